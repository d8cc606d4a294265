"""ASGI entrypoint for the geocam API."""

from geocam.api.app import create_app
from geocam.containers import build_container

app = create_app(build_container())
