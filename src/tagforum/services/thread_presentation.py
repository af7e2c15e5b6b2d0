"""Bounded presentation of a single conversation.

Given any post in a conversation, resolve the conversation root, take the
root's direct replies, and for each of them follow only the earliest-created
reply downward. Expanding a single path per child keeps the number of upstream
fetches roughly linear in conversation depth instead of exponential.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from tagforum.schemas.post import Post, ThreadNode
from tagforum.schemas.thread import DirectChildPresentation, ThreadPresentation

logger = logging.getLogger(__name__)

AT_URI_SCHEME = "at://"
DEFAULT_MAX_DESCENT_DEPTH = 50

FetchThreadFn = Callable[[str, int, int], Awaitable[ThreadNode | None]]


class InvalidThreadUriError(ValueError):
    """Raised before any network call when a thread URI cannot be normalized."""


class ThreadLoadError(Exception):
    """Raised when a thread cannot be loaded from upstream."""


class ThreadNotFoundError(ThreadLoadError):
    """Raised when the requested post or its conversation root does not exist."""


def normalize_uri(uri: str) -> str:
    """Return a fully qualified ``at://`` URI.

    Accepts ``at://...`` as-is, or an unprefixed
    ``did:<method>:<id>/<collection>/<rkey>`` which gains the scheme.

    Raises:
        InvalidThreadUriError: For anything else.
    """
    uri = (uri or "").strip()
    if uri.startswith(AT_URI_SCHEME):
        if len(uri) > len(AT_URI_SCHEME):
            return uri
        raise InvalidThreadUriError("Invalid URI format")

    parts = uri.split("/")
    if len(parts) == 3 and all(parts) and parts[0].startswith("did:"):
        return f"{AT_URI_SCHEME}{uri}"
    raise InvalidThreadUriError("Invalid URI format")


def _earliest(replies: Iterable[ThreadNode]) -> ThreadNode | None:
    # min() keeps the first of equal keys, so upstream order breaks ties.
    return min(replies, key=lambda node: node.post.created_sort_key, default=None)


async def first_children_sequence(
    node: ThreadNode,
    fetch_thread_fn: FetchThreadFn,
    *,
    max_depth: int = DEFAULT_MAX_DESCENT_DEPTH,
) -> list[Post]:
    """Follow the earliest-created reply from ``node`` until a leaf.

    Nodes whose replies were not expanded upstream are fetched one level at a
    time. The walk stops on a revisited uri or after ``max_depth`` posts, so a
    reply cycle cannot loop forever.
    """
    sequence: list[Post] = []
    visited = {node.post.uri}
    current = node

    while len(sequence) < max_depth:
        replies = current.replies
        if replies is None:
            fetched = await fetch_thread_fn(current.post.uri, 1, 0)
            replies = fetched.replies if fetched is not None else None
        if not replies:
            break

        nxt = _earliest(replies)
        if nxt is None or nxt.post.uri in visited:
            if nxt is not None:
                logger.warning("Reply cycle detected at %s", nxt.post.uri)
            break
        visited.add(nxt.post.uri)
        sequence.append(nxt.post)
        current = nxt

    return sequence


async def build_thread_presentation(
    root: ThreadNode,
    fetch_thread_fn: FetchThreadFn,
    *,
    max_descent_depth: int = DEFAULT_MAX_DESCENT_DEPTH,
) -> ThreadPresentation:
    """Build the presentation for an already fetched root node."""
    children: list[DirectChildPresentation] = []
    # One child at a time.
    for child in root.replies or []:
        sequence = await first_children_sequence(
            child, fetch_thread_fn, max_depth=max_descent_depth
        )
        children.append(DirectChildPresentation(post=child.post, first_children_sequence=sequence))

    children.sort(key=lambda child: child.post.created_sort_key)
    return ThreadPresentation(parent_post=root.post, direct_children=children)


async def load_thread(
    fetch_thread_fn: FetchThreadFn,
    uri: str,
    *,
    max_descent_depth: int = DEFAULT_MAX_DESCENT_DEPTH,
) -> ThreadPresentation:
    """Load the presentation of the conversation containing ``uri``.

    Args:
        fetch_thread_fn: Awaitable ``(uri, depth, parent_height) -> ThreadNode | None``.
        uri: Any post in the conversation, ``at://`` prefixed or not.
        max_descent_depth: Cap on each first-children sequence.

    Raises:
        InvalidThreadUriError: Malformed ``uri``; nothing is fetched.
        ThreadNotFoundError: The post or its root does not exist upstream.
        ThreadLoadError: Any other failure, chained to the original error.
    """
    normalized = normalize_uri(uri)

    try:
        node = await fetch_thread_fn(normalized, 1, 1)
        if node is None:
            raise ThreadNotFoundError("Thread not found")

        reply_ref = node.post.reply_ref
        if reply_ref is not None and reply_ref.parent_uri:
            root_uri = reply_ref.root_uri or reply_ref.parent_uri
            logger.debug("Resolving %s to conversation root %s", normalized, root_uri)
            node = await fetch_thread_fn(root_uri, 1, 0)
            if node is None:
                raise ThreadNotFoundError("Thread not found")

        return await build_thread_presentation(
            node, fetch_thread_fn, max_descent_depth=max_descent_depth
        )
    except ThreadLoadError:
        raise
    except Exception as exc:
        logger.warning("Failed to load thread %s: %s", normalized, exc)
        raise ThreadLoadError(str(exc) or "Failed to load thread") from exc
