"""SQLAlchemy models for the Tagforum application."""

from .community import Community, CommunityMember

__all__ = ["Community", "CommunityMember"]
