"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import (
    FastAPI,
    HTTPException,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from geocam.api.models import (
    OverlayView,
    PermissionGrantsRequest,
    PositionRequest,
    QualityView,
    RecordingView,
    SessionView,
    StartSessionRequest,
    StartSessionResponse,
)
from geocam.app_logging import configure_logging
from geocam.containers import AppContainer
from geocam.domain.errors import (
    AlreadyActiveError,
    NotRecordingError,
    PermissionsNotGrantedError,
    RecordingError,
)
from geocam.domain.position import PositionSample
from geocam.domain.quality import QUALITY_PRESETS, get_quality_profile
from geocam.domain.sessions import Session
from geocam.services.capabilities import (
    permission_set_from_grants,
    required_permissions,
)

_ERROR_STATUS = {
    AlreadyActiveError: status.HTTP_409_CONFLICT,
    NotRecordingError: status.HTTP_409_CONFLICT,
    PermissionsNotGrantedError: status.HTTP_403_FORBIDDEN,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/qualities")
    async def list_qualities() -> dict[str, object]:
        """Return the available quality presets."""
        return {
            "qualities": [
                QualityView.from_profile(profile)
                for profile in QUALITY_PRESETS.values()
            ]
        }

    @app.get("/permissions")
    async def get_permissions(request: Request) -> dict[str, object]:
        """Return required platform permissions and the current grant state."""
        state_container: AppContainer = request.app.state.container
        gate = state_container.permission_gate
        return {
            "required": required_permissions(state_container.settings.platform),
            "granted": asdict(gate.permissions),
            "ready": gate.ready,
        }

    @app.put("/permissions")
    async def update_permissions(
        body: PermissionGrantsRequest, request: Request
    ) -> dict[str, object]:
        """Aggregate raw platform grants into the capability gate."""
        state_container: AppContainer = request.app.state.container
        permissions = permission_set_from_grants(
            state_container.settings.platform, body.grants
        )
        state_container.permission_gate.update(permissions)
        return {
            "granted": asdict(permissions),
            "ready": state_container.permission_gate.ready,
        }

    @app.post("/position")
    async def report_position(
        body: PositionRequest, request: Request
    ) -> dict[str, object]:
        """Record a GPS fix and resolve its address."""
        state_container: AppContainer = request.app.state.container
        address = await state_container.position_feed.update(
            PositionSample(lat=body.lat, lon=body.lon)
        )
        return {"lat": body.lat, "lon": body.lon, "address": address}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def start_session(
        body: StartSessionRequest, request: Request
    ) -> StartSessionResponse:
        """Start recording with the selected quality."""
        state_container: AppContainer = request.app.state.container
        label = body.quality or state_container.settings.default_quality
        try:
            quality = get_quality_profile(label)
        except KeyError as exc:
            raise HTTPException(
                status_code=422,
                detail={"error": "UnknownQuality", "message": str(exc.args[0])},
            ) from exc
        try:
            session_id = state_container.session_controller.start(quality)
        except RecordingError as exc:
            raise _http_error(exc) from exc
        return StartSessionResponse(session_id=session_id)

    @app.post("/sessions/stop")
    async def stop_session(request: Request) -> dict[str, str]:
        """Finalize the active recording."""
        state_container: AppContainer = request.app.state.container
        try:
            state_container.session_controller.stop()
        except RecordingError as exc:
            raise _http_error(exc) from exc
        return {"status": "stopping"}

    @app.get("/sessions/current")
    async def current_session(request: Request) -> SessionView:
        """Return the current session snapshot."""
        state_container: AppContainer = request.app.state.container
        return SessionView.from_session(state_container.session_controller.status())

    @app.get("/sessions/history")
    async def session_history(
        request: Request, limit: int = 20
    ) -> dict[str, object]:
        """Return recently finished recordings."""
        state_container: AppContainer = request.app.state.container
        records = state_container.history_service.list_recent(limit)
        return {
            "recordings": [RecordingView.from_record(record) for record in records]
        }

    @app.get("/overlay")
    async def overlay(request: Request) -> OverlayView:
        """Return the current overlay frame."""
        state_container: AppContainer = request.app.state.container
        return OverlayView.from_frame(state_container.overlay_ticker.refresh())

    @app.get("/stats")
    async def stats(request: Request) -> dict[str, int]:
        """Return recording counters."""
        state_container: AppContainer = request.app.state.container
        return state_container.stats.snapshot()

    @app.websocket("/sessions/stream")
    async def session_stream(websocket: WebSocket) -> None:
        """Push a snapshot on every session change."""
        state_container: AppContainer = websocket.app.state.container
        controller = state_container.session_controller
        queue: asyncio.Queue[Session] = asyncio.Queue()
        await websocket.accept()
        unsubscribe = controller.subscribe(queue.put_nowait)

        async def pump() -> None:
            await websocket.send_json(_session_payload(controller.status()))
            while True:
                session = await queue.get()
                await websocket.send_json(_session_payload(session))

        sender = asyncio.create_task(pump())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Session stream client disconnected")
        finally:
            unsubscribe()
            sender.cancel()

    return app


def _http_error(exc: RecordingError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(
        status_code=status_code, detail={"error": exc.kind, "message": str(exc)}
    )


def _session_payload(session: Session) -> dict[str, object]:
    return SessionView.from_session(session).model_dump(mode="json")
