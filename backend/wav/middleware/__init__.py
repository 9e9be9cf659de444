"""
Middleware for the WAV API.
"""
from wav.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]
