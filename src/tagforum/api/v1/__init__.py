# src/tagforum/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    community_membership_router,
    feed_router,
    threads_router,
)

__all__ = [
    "communities_router",
    "community_membership_router",
    "feed_router",
    "threads_router",
]
