"""ASGI entrypoint for the recipe API."""

from smart_kitchen.api.app import create_app
from smart_kitchen.containers import build_container

app = create_app(build_container())
