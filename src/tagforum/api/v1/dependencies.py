"""Shared API dependencies for caller identity and upstream access."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from tagforum.db.session import get_db
from tagforum.services.atproto import AtprotoClient
from tagforum.services.feed_poller import TagFeedPoller

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_atproto_client(request: Request) -> AtprotoClient:
    """Return the upstream client created at application startup."""
    client: AtprotoClient | None = getattr(request.app.state, "atproto_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upstream client is not initialized",
        )
    return client


def get_feed_pollers(request: Request) -> dict[str, TagFeedPoller]:
    """Return the watched-tag pollers keyed by lowercase tag."""
    return getattr(request.app.state, "feed_pollers", None) or {}


def get_caller_did(
    x_did: Annotated[str | None, Header(alias="X-Did")] = None,
) -> str:
    """Return the caller's DID from the ``X-Did`` header.

    Raises:
        HTTPException: If the header is missing or not a DID.
    """
    if not x_did or not x_did.startswith("did:"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-Did header",
        )
    return x_did


AtprotoClientDep = Annotated[AtprotoClient, Depends(get_atproto_client)]
FeedPollersDep = Annotated[dict[str, TagFeedPoller], Depends(get_feed_pollers)]
CallerDidDep = Annotated[str, Depends(get_caller_did)]
