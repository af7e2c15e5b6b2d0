"""Background polling of a single-tag thread feed.

This module provides the TagFeedPoller class which periodically fetches the
newest search page for a hashtag and folds it into the threads accumulated so
far with ``rollup_threads``. The poller owns its thread list, so successive
polls never discard history.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from tagforum.core.settings import settings
from tagforum.schemas.thread import Thread

from .atproto import AtprotoClient, AtprotoError
from .community_posts import normalize_tag
from .thread_rollup import rollup_threads

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass
class TagFeedState:
    """Mutable feed state carried between polls."""

    threads: list[Thread] = field(default_factory=list)
    polls: int = 0
    failures: int = 0


class TagFeedPoller:
    """Periodically pulls tagged posts and rolls them into threads."""

    def __init__(
        self,
        client: AtprotoClient,
        tag: str,
        *,
        interval_seconds: float | None = None,
        page_size: int | None = None,
    ) -> None:
        self.client = client
        self.tag = normalize_tag(tag)
        self.interval_seconds = (
            settings.feed_poll_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.page_size = settings.search_page_size if page_size is None else page_size
        self.state = TagFeedState()
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def threads(self) -> list[Thread]:
        """Current snapshot, most recently updated first."""
        return list(self.state.threads)

    async def poll_once(self) -> list[Thread]:
        """Fetch the newest page and merge it into the feed."""
        page = await self.client.search_posts(f"#{self.tag}", self.page_size)
        result = rollup_threads(page.posts, self.state.threads, self.tag)
        self.state.threads = result.threads
        self.state.polls += 1
        return self.threads

    async def start(self) -> None:
        """Start the background polling loop."""

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background polling loop."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.1, float(self.interval_seconds))

        while not self._stopping.is_set():
            try:
                await self.poll_once()
                delay = interval
            except AtprotoError as e:
                self.state.failures += 1
                logger.warning("TagFeedPoller #%s encountered AtprotoError: %s", self.tag, e)
                delay = min(interval * 4, 60.0)
            except Exception:
                self.state.failures += 1
                logger.exception("TagFeedPoller #%s poll failed", self.tag)
                delay = min(interval * 4, 60.0)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except TimeoutError:
                continue
