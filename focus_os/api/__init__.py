"""HTTP API for Focus Time OS."""

from focus_os.api.server import create_app, serve

__all__ = ["create_app", "serve"]
