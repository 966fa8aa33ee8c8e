"""
Media API endpoints for streamin.

Provides endpoints for listing unprocessed and processed media, starting a
DASH conversion and polling conversion sessions.
"""

import logging
from pathlib import Path
from typing import Dict, List

from fastapi import APIRouter, Depends, Response, status

from streamin.api.deps import get_registry, not_found
from streamin.core.config import get_settings
from streamin.core.registry import SessionRegistry
from streamin.pipeline.errors import SessionError
from streamin.schemas.media import MediaInfo, decode_media_id
from streamin.schemas.session import ProcessRequest, SessionInfo
from streamin.services.dash import start_dash_conversion
from streamin.services.library import list_media
from streamin.services.probe import ProbeError

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================


def resolve_unprocessed(media_id: str) -> Path:
    """
    Map a media id to an existing file inside the unprocessed directory.

    Raises:
        HTTPException 404: If the id does not decode, the file does not
            exist or it lies outside the unprocessed directory
    """
    try:
        canonical = Path(decode_media_id(media_id)).resolve(strict=True)
    except (ValueError, OSError) as e:
        logger.error(f"Rejected media id {media_id!r}: {e}")
        raise not_found()

    root = get_settings().unprocessed_dir.resolve()
    if not canonical.is_relative_to(root) or not canonical.is_file():
        logger.error(f"Rejected media id {media_id!r}: outside {root}")
        raise not_found()

    return canonical


def _list_dir(directory: Path) -> List[MediaInfo]:
    try:
        return list_media(directory)
    except OSError as e:
        logger.error(f"Cannot list {directory}: {e}")
        raise not_found()


# =============================================================================
# Media Endpoints
# =============================================================================


@router.get("/media/unprocessed", response_model=List[MediaInfo])
def unprocessed() -> List[MediaInfo]:
    """List the media files waiting for conversion."""
    return _list_dir(get_settings().unprocessed_dir)


@router.get("/media/processed", response_model=List[MediaInfo])
def processed() -> List[MediaInfo]:
    """List the converted DASH packages."""
    return _list_dir(get_settings().processed_dir)


@router.post("/media/process", status_code=status.HTTP_201_CREATED)
async def process(
    request: ProcessRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> Response:
    """
    Start converting an unprocessed media file.

    Returns 201 with the new session id in the Location header. Every
    failure, including an unsupported conversion request, is a 404.
    """
    source = resolve_unprocessed(request.id)
    if not request.dash:
        raise not_found()

    try:
        session_id = await start_dash_conversion(registry, source)
    except (ProbeError, SessionError) as e:
        logger.error(f"Cannot convert {source}: {e}")
        raise not_found()

    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": session_id},
    )


# =============================================================================
# Session Endpoints
# =============================================================================


@router.get("/media/process/session", response_model=Dict[str, SessionInfo])
async def all_sessions(
    registry: SessionRegistry = Depends(get_registry),
) -> Dict[str, SessionInfo]:
    """Status of every conversion started by this process."""
    return registry.infos()


@router.get("/media/process/session/{session_id}", response_model=SessionInfo)
async def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionInfo:
    """Status of one conversion."""
    session = registry.get(session_id)
    if session is None:
        logger.error(f"Unknown session {session_id!r}")
        raise not_found()
    return session.get_info()


@router.post("/media/process/session/{session_id}/cancel", response_model=SessionInfo)
async def cancel_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionInfo:
    """Stop a running conversion; finished sessions are left as they are."""
    session = registry.get(session_id)
    if session is None:
        logger.error(f"Unknown session {session_id!r}")
        raise not_found()

    if session.cancel():
        await session.wait()
    return session.get_info()
