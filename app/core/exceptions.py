# app/core/exceptions.py
"""
Domain exceptions.

Services raise these; the exception handlers in app.main turn them into the
`{success: false, ...}` JSON envelope with the matching status code.
"""
from typing import Any, List, Optional


class AppError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code: int = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.errors = errors
        self.data = data


class ValidationError(AppError):
    """Missing or malformed required fields"""
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Record already exists (e.g. duplicate contractId)"""
    status_code = 409


class UpstreamError(AppError):
    """Database or chain RPC failure"""
    status_code = 500


# ────────────────────────────────────────────
# Chain errors (never surfaced to HTTP directly)
# ────────────────────────────────────────────

class ChainError(Exception):
    pass


class ChainConfigurationError(ChainError):
    """Permanent: required connection parameters are missing or invalid"""


class ChainConnectionError(ChainError):
    """Transient: the RPC endpoint could not be reached"""


class ChainTransportError(ChainError):
    """Transient: an RPC call failed while listening"""
