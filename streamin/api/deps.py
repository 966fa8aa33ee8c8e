"""
Common dependencies for streamin API endpoints.
"""

from fastapi import HTTPException, Request, status

from streamin.core.registry import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    """
    Session registry dependency.

    Usage:
        @router.get("/sessions")
        async def sessions(registry: SessionRegistry = Depends(get_registry)):
            ...
    """
    return request.app.state.sessions


def not_found() -> HTTPException:
    """
    The single error clients ever see for a bad media or session id.

    Unknown ids, ids outside the media directory and unreadable files all look
    the same from the outside to avoid leaking what exists on disk.
    """
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "message": "Not found"},
    )


__all__ = [
    "get_registry",
    "not_found",
]
