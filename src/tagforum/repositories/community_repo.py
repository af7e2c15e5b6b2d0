"""Data access helpers for working with communities."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from tagforum.models.community import (
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLE_OWNER,
    Community,
    CommunityMember,
)
from tagforum.services.community_posts import normalize_tag

__all__ = ["CommunityRepository", "DuplicateCommunityError"]

ASSIGNABLE_ROLES = (ROLE_ADMIN, ROLE_MEMBER)


class DuplicateCommunityError(ValueError):
    """Raised when a community already claims the requested hashtag."""


class CommunityRepository:
    """Thin wrapper around database access for community entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_hashtag(self, hashtag: str) -> Community | None:
        """Return a community with its members, or None."""
        stmt = (
            select(Community)
            .options(selectinload(Community.members))
            .where(Community.hashtag == normalize_tag(hashtag).lower())
        )
        return self.session.execute(stmt).scalars().first()

    def create(
        self,
        *,
        name: str,
        hashtag: str,
        creator_did: str,
        description: str = "",
        rules: str = "",
        initial_members: Iterable[tuple[str, str]] = (),
    ) -> Community:
        """Insert a community and its initial members in one transaction.

        ``initial_members`` holds ``(did, role)`` pairs with role ``admin`` or
        ``member``. The creator is always stored with the owner role, and a
        repeated DID keeps its first role.

        Raises:
            DuplicateCommunityError: If the hashtag is already taken.
            ValueError: If an initial member carries any other role.
        """
        tag = normalize_tag(hashtag).lower()
        if self.get_by_hashtag(tag) is not None:
            raise DuplicateCommunityError(f"Community #{tag} already exists")

        community = Community(
            name=name,
            hashtag=tag,
            description=description,
            rules=rules,
            creator_did=creator_did,
        )
        roles = {creator_did: ROLE_OWNER}
        for did, role in initial_members:
            if role not in ASSIGNABLE_ROLES:
                raise ValueError(f"Unsupported member role: {role}")
            roles.setdefault(did, role)
        community.members = [
            CommunityMember(member_did=did, role=role) for did, role in roles.items()
        ]

        self.session.add(community)
        self.session.commit()
        self.session.refresh(community)
        return community

    def list_owned(self, owner_did: str) -> list[Community]:
        """Return communities where ``owner_did`` holds the owner role."""
        stmt = (
            select(Community)
            .join(CommunityMember, CommunityMember.community_id == Community.id)
            .where(CommunityMember.member_did == owner_did, CommunityMember.role == ROLE_OWNER)
            .order_by(Community.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def member_dids(self, hashtag: str) -> set[str] | None:
        """Return the member DID set, or None when no community uses the tag."""
        community = self.get_by_hashtag(hashtag)
        if community is None:
            return None
        return {member.member_did for member in community.members}

    def delete(self, community_id: int) -> Community | None:
        """Delete a community and its memberships; returns the deleted row."""
        community = self.session.get(Community, community_id)
        if community is None:
            return None
        self.session.delete(community)
        self.session.commit()
        return community
