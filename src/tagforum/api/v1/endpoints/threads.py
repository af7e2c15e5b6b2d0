"""Thread detail endpoint."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from tagforum.core.settings import settings
from tagforum.schemas.thread import ThreadPresentation
from tagforum.services.thread_presentation import (
    InvalidThreadUriError,
    ThreadLoadError,
    ThreadNotFoundError,
    load_thread,
)

from ..dependencies import AtprotoClientDep

router = APIRouter(prefix="/threads", tags=["threads"])


@router.get("", response_model=ThreadPresentation)
async def get_thread(
    uri: Annotated[str, Query(min_length=1, description="Any post in the conversation")],
    client: AtprotoClientDep,
) -> ThreadPresentation:
    """Return the root of a conversation with each direct reply's first-reply chain."""
    try:
        return await load_thread(
            client.get_post_thread,
            uri,
            max_descent_depth=settings.thread_max_descent_depth,
        )
    except InvalidThreadUriError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ThreadNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ThreadLoadError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to load thread",
        ) from exc
