# src/tagforum/api/v1/endpoints/communities.py
"""Community-related endpoints for the Tagforum API."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status

from tagforum.core.settings import settings
from tagforum.models import Community
from tagforum.repositories.community_repo import CommunityRepository, DuplicateCommunityError
from tagforum.schemas.community import (
    CommunityCreate,
    CommunityMembersResponse,
    CommunityResponse,
    CommunitySummary,
)
from tagforum.schemas.thread import ParentPostsPage, SortOrder
from tagforum.services.atproto import AtprotoError
from tagforum.services.community_posts import get_parent_posts

from ..dependencies import AtprotoClientDep, CallerDidDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communities", tags=["communities"])
membership_router = APIRouter(prefix="/community", tags=["communities"])


def _require_community(repo: CommunityRepository, hashtag: str) -> Community:
    community = repo.get_by_hashtag(hashtag)
    if not community:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found"
        )
    return community


@router.post("",
          response_model=CommunityResponse,
          status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    creator_did: CallerDidDep,
    db: SessionDep,
) -> Community:
    """Create a new community; the caller becomes its owner."""
    repo = CommunityRepository(db)
    try:
        community = repo.create(
            name=community_data.name,
            hashtag=community_data.hashtag,
            creator_did=creator_did,
            description=community_data.description,
            rules=community_data.rules,
            initial_members=[
                (member.did, member.role) for member in community_data.initial_members
            ],
        )
    except DuplicateCommunityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Community hashtag already exists"
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    logger.info("Community #%s created by %s", community.hashtag, creator_did)
    return community


@router.get("/{hashtag}", response_model=CommunityResponse)
async def get_community(hashtag: str, db: SessionDep) -> Community:
    """Get a community and its members by hashtag."""
    return _require_community(CommunityRepository(db), hashtag)


@router.delete(
    "/{hashtag}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_community(hashtag: str, caller_did: CallerDidDep, db: SessionDep) -> Response:
    """Delete a community; only its creator may do so."""
    repo = CommunityRepository(db)
    community = _require_community(repo, hashtag)
    if community.creator_did != caller_did:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the community owner can delete it",
        )
    repo.delete(community.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{hashtag}/posts", response_model=ParentPostsPage)
async def get_community_posts(
    hashtag: str,
    db: SessionDep,
    client: AtprotoClientDep,
    cursor: str | None = None,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    sort: SortOrder = "recent",
    scope: Annotated[str | None, Query(pattern="^(all|members)$")] = None,
) -> ParentPostsPage:
    """List the root posts of a community, freshest conversation first.

    Posts are restricted to community members when a community record exists
    for the tag, unless ``scope=all``.
    """
    try:
        member_filter = CommunityRepository(db).member_dids(hashtag)
        return await get_parent_posts(
            client.search_posts,
            hashtag,
            cursor,
            limit or settings.parent_posts_per_page,
            sort,
            member_filter,
            scope == "all",
            page_size=settings.search_page_size,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except AtprotoError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch posts from upstream",
        ) from exc


@membership_router.get("/owner", response_model=list[CommunitySummary])
async def get_owned_communities(owner_did: CallerDidDep, db: SessionDep) -> list[Community]:
    """List communities owned by the caller."""
    return CommunityRepository(db).list_owned(owner_did)


@membership_router.get("/{hashtag}/members", response_model=CommunityMembersResponse)
async def get_community_members(hashtag: str, db: SessionDep) -> CommunityMembersResponse:
    """List the member DIDs of a community."""
    community = _require_community(CommunityRepository(db), hashtag)
    return CommunityMembersResponse(members=[member.member_did for member in community.members])
