"""FastAPI application exposing level sharing endpoints."""

from .app import create_app
from .settings import LevelApiSettings

__all__ = ["create_app", "LevelApiSettings"]
