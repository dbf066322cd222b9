"""Shared dependencies for store routers."""

from fastapi import Request
from services.store_service.services.text_generation import TextGenerator


def get_text_generator(request: Request) -> TextGenerator:
    """The generator built at startup and held on ``app.state``."""
    return request.app.state.text_generator
