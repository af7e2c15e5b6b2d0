# src/tagforum/schemas/thread.py
"""Derived thread aggregates produced by the aggregation services."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .post import Post

SortOrder = Literal["recent", "top"]


class CommunityPost(BaseModel):
    """A top-level community post with its freshest reply timestamp."""

    post: Post
    latest_reply_at: datetime

    def bump(self, indexed_at: datetime) -> None:
        """Advance ``latest_reply_at``; older timestamps are ignored."""
        if indexed_at > self.latest_reply_at:
            self.latest_reply_at = indexed_at


class ParentPostsPage(BaseModel):
    """A bounded page of community root posts plus the upstream cursor."""

    posts: list[CommunityPost] = Field(default_factory=list)
    cursor: str | None = None


class Thread(BaseModel):
    """A root post and every reply discovered for it so far."""

    root_post: Post
    children: list[Post] = Field(default_factory=list)
    latest_update: datetime

    def has_child(self, uri: str) -> bool:
        return any(child.uri == uri for child in self.children)

    def add_child(self, post: Post) -> bool:
        """Append ``post`` unless already recorded; returns True when added."""
        if post.uri == self.root_post.uri or self.has_child(post.uri):
            return False
        self.children.append(post)
        if post.indexed_at > self.latest_update:
            self.latest_update = post.indexed_at
        return True


class ThreadRollupResult(BaseModel):
    threads: list[Thread] = Field(default_factory=list)


class DirectChildPresentation(BaseModel):
    post: Post
    first_children_sequence: list[Post] = Field(default_factory=list)


class ThreadPresentation(BaseModel):
    """Fixed-shape view of one conversation for the detail page."""

    parent_post: Post
    direct_children: list[DirectChildPresentation] = Field(default_factory=list)
