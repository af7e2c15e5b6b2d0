# src/tagforum/schemas/post.py
"""Pydantic models for posts as returned by the upstream AT Protocol API.

Upstream data quality is outside our control, so the ``from_view`` parsers
tolerate missing or malformed fields instead of raising wherever a sensible
default exists. Only a post without a ``uri`` or ``indexedAt`` is rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tagforum.db.time import parse_timestamp

NOT_FOUND_POST_TYPE = "app.bsky.feed.defs#notFoundPost"
BLOCKED_POST_TYPE = "app.bsky.feed.defs#blockedPost"


def _ref_uri(ref: object) -> str | None:
    if isinstance(ref, Mapping):
        uri = ref.get("uri")
        if isinstance(uri, str) and uri:
            return uri
    return None


def _count(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


class ReplyRef(BaseModel):
    """Reply pointers carried by a post record.

    Either component may be None when the upstream reference is malformed.
    """

    model_config = ConfigDict(frozen=True)

    root_uri: str | None = None
    parent_uri: str | None = None

    @classmethod
    def from_record(cls, reply: object) -> ReplyRef | None:
        """Parse ``record.reply``; returns None unless it is a non-empty object."""
        if not isinstance(reply, Mapping) or not reply:
            return None
        return cls(root_uri=_ref_uri(reply.get("root")), parent_uri=_ref_uri(reply.get("parent")))


class Post(BaseModel):
    """Minimal immutable view of an upstream post."""

    model_config = ConfigDict(frozen=True)

    uri: str
    cid: str | None = None
    author_did: str
    author_handle: str | None = None
    text: str = ""
    created_at: datetime | None = None
    indexed_at: datetime
    like_count: int | None = Field(default=None, ge=0)
    reply_count: int | None = Field(default=None, ge=0)
    repost_count: int | None = Field(default=None, ge=0)
    reply_ref: ReplyRef | None = None

    @property
    def is_reply(self) -> bool:
        return self.reply_ref is not None

    @property
    def created_sort_key(self) -> datetime:
        """Record creation time, falling back to the indexer timestamp."""
        return self.created_at or self.indexed_at

    @classmethod
    def from_view(cls, view: Mapping[str, Any]) -> Post:
        """Build a post from an ``app.bsky.feed.defs#postView`` payload.

        Raises:
            ValueError: If the view lacks a uri or a parseable indexedAt.
        """
        uri = view.get("uri")
        if not isinstance(uri, str) or not uri:
            raise ValueError("post view is missing its uri")

        record = view.get("record")
        if not isinstance(record, Mapping):
            record = {}
        author = view.get("author")
        if not isinstance(author, Mapping):
            author = {}

        created_at = parse_timestamp(record.get("createdAt"))
        indexed_at = parse_timestamp(view.get("indexedAt")) or created_at
        if indexed_at is None:
            raise ValueError(f"post view {uri} has no usable timestamp")

        text = record.get("text")
        return cls(
            uri=uri,
            cid=view.get("cid") if isinstance(view.get("cid"), str) else None,
            author_did=str(author.get("did") or ""),
            author_handle=author.get("handle") if isinstance(author.get("handle"), str) else None,
            text=text if isinstance(text, str) else "",
            created_at=created_at,
            indexed_at=indexed_at,
            like_count=_count(view.get("likeCount")),
            reply_count=_count(view.get("replyCount")),
            repost_count=_count(view.get("repostCount")),
            reply_ref=ReplyRef.from_record(record.get("reply")),
        )


class ThreadNode(BaseModel):
    """One node of an upstream ``getPostThread`` response.

    ``replies`` is None when the upstream did not expand this node (depth
    limit), and an empty list when it did and found nothing.
    """

    model_config = ConfigDict(frozen=True)

    post: Post
    replies: list[ThreadNode] | None = None

    @classmethod
    def from_view(cls, view: Mapping[str, Any]) -> ThreadNode | None:
        """Parse a ``#threadViewPost``; not-found and blocked entries yield None."""
        if view.get("$type") in (NOT_FOUND_POST_TYPE, BLOCKED_POST_TYPE):
            return None
        post_view = view.get("post")
        if not isinstance(post_view, Mapping):
            return None
        try:
            post = Post.from_view(post_view)
        except ValueError:
            return None

        raw_replies = view.get("replies")
        replies: list[ThreadNode] | None = None
        if isinstance(raw_replies, list):
            replies = []
            for raw in raw_replies:
                if not isinstance(raw, Mapping):
                    continue
                node = cls.from_view(raw)
                if node is not None:
                    replies.append(node)
        return cls(post=post, replies=replies)


class SearchPage(BaseModel):
    """One page of ``app.bsky.feed.searchPosts`` results."""

    posts: list[Post] = Field(default_factory=list)
    cursor: str | None = None
