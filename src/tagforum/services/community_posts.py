"""Extraction of top-level community posts from hashtag search results.

The upstream search endpoint knows nothing about communities or threads, so
each call walks search pages sequentially (each cursor depends on the previous
response) until enough qualifying root posts are collected, tracking the
freshest reply seen for each root along the way.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Set

from tagforum.schemas.post import Post, SearchPage
from tagforum.schemas.thread import CommunityPost, ParentPostsPage, SortOrder

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_POSTS = 25

SearchFn = Callable[[str, int, str | None], Awaitable[SearchPage]]


def normalize_tag(tag: str) -> str:
    """Strip surrounding whitespace and one leading '#'.

    Raises:
        ValueError: If nothing is left of the tag.
    """
    cleaned = (tag or "").strip()
    if cleaned.startswith("#"):
        cleaned = cleaned[1:]
    if not cleaned:
        raise ValueError("tag must not be empty")
    return cleaned


def has_hashtag(text: str, tag: str) -> bool:
    """Case-insensitive literal substring test for ``#tag``.

    No word-boundary check: ``#tagextra`` matches ``tag``.
    """
    return f"#{tag.lower()}" in (text or "").lower()


def sort_community_posts(
    posts: Iterable[CommunityPost], sort_order: SortOrder = "recent"
) -> list[CommunityPost]:
    """Order by likes then freshness for "top", by freshness otherwise."""
    if sort_order == "top":
        return sorted(
            posts,
            key=lambda p: (p.post.like_count or 0, p.latest_reply_at),
            reverse=True,
        )
    return sorted(posts, key=lambda p: p.latest_reply_at, reverse=True)


def _is_parent_candidate(
    post: Post,
    tag: str,
    member_filter: Set[str] | None,
    include_all: bool,
) -> bool:
    if post.is_reply:
        return False
    if not has_hashtag(post.text, tag):
        return False
    if member_filter is not None and not include_all:
        return post.author_did in member_filter
    return True


async def get_parent_posts(
    search_fn: SearchFn,
    tag: str,
    cursor: str | None = None,
    max_posts: int = DEFAULT_MAX_POSTS,
    sort_order: SortOrder = "recent",
    member_filter: Set[str] | None = None,
    include_all: bool = False,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ParentPostsPage:
    """Collect up to ``max_posts`` root posts tagged with ``tag``.

    Args:
        search_fn: Awaitable ``(query, limit, cursor) -> SearchPage``.
        tag: Hashtag with or without the leading '#'.
        cursor: Upstream cursor to resume from.
        max_posts: Upper bound on returned posts; also the stop condition.
        sort_order: "recent" (latest reply first) or "top" (likes first).
        member_filter: Author DIDs allowed to start a thread, when given.
        include_all: Ignore ``member_filter``.
        page_size: Upstream page size, independent of ``max_posts``.

    Returns:
        The sorted, truncated posts and the cursor of the last upstream
        response (None once the search is exhausted).

    Raises:
        ValueError: For an empty tag or non-positive ``max_posts``.
    """
    tag = normalize_tag(tag)
    if max_posts < 1:
        raise ValueError("max_posts must be at least 1")

    query = f"#{tag}"
    parents: dict[str, CommunityPost] = {}
    seen_uris: set[str] = set()
    current_cursor = cursor
    pages = 0

    while len(parents) < max_posts:
        page = await search_fn(query, page_size, current_cursor)
        pages += 1
        current_cursor = page.cursor

        if not page.posts:
            break

        for post in page.posts:
            if post.uri in seen_uris:
                continue
            seen_uris.add(post.uri)
            if _is_parent_candidate(post, tag, member_filter, include_all):
                parents[post.uri] = CommunityPost(post=post, latest_reply_at=post.indexed_at)

        # Replies need not carry the tag themselves, so scan the whole page.
        for post in page.posts:
            if post.reply_ref is None or post.reply_ref.root_uri is None:
                continue
            parent = parents.get(post.reply_ref.root_uri)
            if parent is not None:
                parent.bump(post.indexed_at)

        if not current_cursor:
            break

    logger.debug(
        "Collected %d parent posts for #%s over %d page(s)", len(parents), tag, pages
    )
    ordered = sort_community_posts(parents.values(), sort_order)
    return ParentPostsPage(posts=ordered[:max_posts], cursor=current_cursor)
