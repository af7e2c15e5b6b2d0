# src/tagforum/schemas/__init__.py
"""
Pydantic schemas for upstream posts, derived aggregates and API payloads.
"""

from .community import (
    CommunityCreate,
    CommunityMemberResponse,
    CommunityMembersResponse,
    CommunityResponse,
    CommunitySummary,
)
from .post import Post, ReplyRef, SearchPage, ThreadNode
from .thread import (
    CommunityPost,
    DirectChildPresentation,
    ParentPostsPage,
    SortOrder,
    Thread,
    ThreadPresentation,
    ThreadRollupResult,
)

__all__ = [
    "CommunityCreate", "CommunityMemberResponse", "CommunityMembersResponse",
    "CommunityResponse", "CommunitySummary",
    "Post", "ReplyRef", "SearchPage", "ThreadNode",
    "CommunityPost", "DirectChildPresentation", "ParentPostsPage", "SortOrder",
    "Thread", "ThreadPresentation", "ThreadRollupResult",
]
