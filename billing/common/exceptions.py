"""
Error taxonomy shared by the service layer.

``ValidationError`` and ``ConflictError`` are raised by services and reach the
client unchanged through FastAPI's HTTPException handling. ``DependencyFailure``
is raised by adapters for external systems (rate provider, renderer, mail
server) and is always handled by the caller that owns the fallback.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Missing field, non-positive amount or illegal status transition."""

    def __init__(self, detail: Any):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    """Duplicate invoice number or already-consumed ledger entry."""

    def __init__(self, detail: Any):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class DependencyFailure(Exception):
    """An external collaborator failed; callers recover locally."""

    def __init__(self, message: str, service: Optional[str] = None, details: Optional[Dict] = None):
        self.message = message
        self.service = service
        self.details = details or {}
        super().__init__(self.message)
