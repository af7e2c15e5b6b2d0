"""API endpoint modules for version 1."""

from .communities import membership_router as community_membership_router
from .communities import router as communities_router
from .feed import router as feed_router
from .threads import router as threads_router

__all__ = [
    "communities_router",
    "community_membership_router",
    "feed_router",
    "threads_router",
]
