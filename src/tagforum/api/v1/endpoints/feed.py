"""Single-tag thread feed endpoint."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from tagforum.core.settings import settings
from tagforum.schemas.thread import ThreadRollupResult
from tagforum.services.atproto import AtprotoError
from tagforum.services.community_posts import normalize_tag
from tagforum.services.thread_rollup import rollup_threads

from ..dependencies import AtprotoClientDep, FeedPollersDep

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("/{tag}", response_model=ThreadRollupResult)
async def get_tag_feed(
    tag: str,
    client: AtprotoClientDep,
    pollers: FeedPollersDep,
) -> ThreadRollupResult:
    """Return threads for a hashtag, most recently active first.

    Watched tags are served from their background poller; any other tag is
    rolled up from a single fresh search page.
    """
    try:
        clean_tag = normalize_tag(tag)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    poller = pollers.get(clean_tag.lower())
    if poller is not None:
        return ThreadRollupResult(threads=poller.threads)

    try:
        page = await client.search_posts(f"#{clean_tag}", settings.search_page_size)
    except AtprotoError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch posts from upstream",
        ) from exc
    return rollup_threads(page.posts, [], clean_tag)
