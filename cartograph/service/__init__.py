"""HTTP service exposing the live model and diagram set."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
