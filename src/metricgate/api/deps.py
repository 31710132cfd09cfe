"""API dependencies."""

from fastapi import Request

from metricgate.repository import Repository


def get_repository(request: Request) -> Repository:
    """Repository built by the application lifespan."""
    return request.app.state.repository


def get_hash_key(request: Request) -> str:
    """Server signing key; empty disables hash checks."""
    return request.app.state.hash_key
