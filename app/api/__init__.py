# API module exports
from app.api import health
from app.api.base import api_router

__all__ = ["health", "api_router"]
