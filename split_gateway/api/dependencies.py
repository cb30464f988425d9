"""Dependency injection for FastAPI endpoints"""

from fastapi import Header, HTTPException, Request


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, resolved upstream by the auth layer and forwarded as X-User-ID"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    return x_user_id.strip()
