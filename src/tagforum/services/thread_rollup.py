"""Incremental grouping of tagged posts into threads.

``rollup_threads`` folds a freshly fetched batch into a caller-owned list of
threads. It is pure: the caller's threads are deep-copied, nothing is fetched.
Merges are idempotent (children are unique by uri) and monotonic
(``latest_update`` never moves backwards), so overlapping poll batches are safe.

A reply whose root is neither in the batch nor in the prior threads is dropped
for this call; it is attached once its root surfaces in a later batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from tagforum.schemas.post import Post
from tagforum.schemas.thread import Thread, ThreadRollupResult

from .community_posts import has_hashtag, normalize_tag

logger = logging.getLogger(__name__)


def _descends_from(post: Post, root_uri: str, batch: Mapping[str, Post]) -> bool:
    """Walk ``reply_ref.parent`` upward through ``batch`` looking for ``root_uri``."""
    if post.reply_ref is None:
        return False
    if post.reply_ref.root_uri == root_uri:
        return True

    visited = {post.uri}
    current: Post | None = post
    while current is not None and current.reply_ref is not None:
        parent_uri = current.reply_ref.parent_uri
        if parent_uri is None or parent_uri in visited:
            return False
        if parent_uri == root_uri:
            return True
        visited.add(parent_uri)
        current = batch.get(parent_uri)
    return False


def rollup_threads(
    posts: Iterable[Post],
    existing_threads: Iterable[Thread],
    tag: str,
) -> ThreadRollupResult:
    """Merge ``posts`` into ``existing_threads`` and sort by latest activity.

    Args:
        posts: Newly fetched posts, in any order, possibly overlapping.
        existing_threads: Result of a previous call; never mutated.
        tag: Hashtag (with or without '#') every counted post must contain.

    Returns:
        Every known thread, most recently updated first.
    """
    tag = normalize_tag(tag)
    threads: dict[str, Thread] = {
        thread.root_post.uri: thread.model_copy(deep=True) for thread in existing_threads
    }

    tagged = [post for post in posts if has_hashtag(post.text, tag)]
    batch = {post.uri: post for post in tagged}

    for post in tagged:
        if post.reply_ref is None:
            continue
        root_uri = post.reply_ref.root_uri
        thread = threads.get(root_uri) if root_uri else None
        if thread is not None:
            thread.add_child(post)

    for post in tagged:
        if post.is_reply:
            continue
        thread = threads.get(post.uri)
        if thread is None:
            thread = Thread(root_post=post, children=[], latest_update=post.indexed_at)
            threads[post.uri] = thread
        for candidate in tagged:
            if candidate.uri != post.uri and _descends_from(candidate, post.uri, batch):
                thread.add_child(candidate)

    logger.debug("Rolled %d post(s) for #%s into %d thread(s)", len(tagged), tag, len(threads))

    ordered = sorted(threads.values(), key=lambda t: t.latest_update, reverse=True)
    return ThreadRollupResult(threads=ordered)
