"""Aggregation services for the Tagforum application."""

from .atproto import AtprotoClient, AtprotoError
from .community_posts import get_parent_posts
from .feed_poller import TagFeedPoller
from .thread_presentation import (
    InvalidThreadUriError,
    ThreadLoadError,
    ThreadNotFoundError,
    load_thread,
)
from .thread_rollup import rollup_threads

__all__ = [
    "AtprotoClient",
    "AtprotoError",
    "get_parent_posts",
    "rollup_threads",
    "load_thread",
    "InvalidThreadUriError",
    "ThreadLoadError",
    "ThreadNotFoundError",
    "TagFeedPoller",
]
