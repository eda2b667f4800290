"""ASGI entrypoint for the pet wall API."""

from pet_wall.api.app import create_app
from pet_wall.containers import build_container

app = create_app(build_container())
