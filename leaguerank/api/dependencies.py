"""FastAPI dependencies."""

from fastapi import Request

from ..services import Services


def get_services(request: Request) -> Services:
    """Services built once at startup and stored on the app state."""
    return request.app.state.services
