"""
Error type shared by services and routers.

Raised errors render as ``{"detail": {"code": ..., "message": ...}}`` through
FastAPI's HTTPException handling.
"""
from fastapi import HTTPException


class PortalError(HTTPException):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(status_code=status_code, detail={"code": code, "message": message})
        self.code = code
        self.message = message


def not_found(message: str = "Not found", code: str = "NOT_FOUND") -> PortalError:
    return PortalError(404, code, message)


def bad_request(code: str, message: str) -> PortalError:
    return PortalError(400, code, message)


def forbidden(message: str = "Forbidden", code: str = "FORBIDDEN") -> PortalError:
    return PortalError(403, code, message)
