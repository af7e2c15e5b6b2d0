"""AT Protocol client used by the aggregation services.

This module provides the AtprotoClient class that wraps the two upstream
XRPC endpoints the engine consumes:

- ``app.bsky.feed.searchPosts`` for paginated hashtag search
- ``app.bsky.feed.getPostThread`` for single-conversation fetches

The client is an explicit context object: callers construct it (usually once
per application) and pass it, or its bound methods, to the services. The only
retry is a single replay after an expired session is renewed; any other failed
request, including an unparseable body, surfaces as AtprotoError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from tagforum.core.settings import settings
from tagforum.schemas.post import NOT_FOUND_POST_TYPE, Post, SearchPage, ThreadNode

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404

SEARCH_POSTS = "/xrpc/app.bsky.feed.searchPosts"
GET_POST_THREAD = "/xrpc/app.bsky.feed.getPostThread"
CREATE_SESSION = "/xrpc/com.atproto.server.createSession"

EXPIRED_TOKEN = "ExpiredToken"


class AtprotoError(RuntimeError):
    """Base exception raised for upstream failures.

    ``status_code`` is None for transport-level errors.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AtprotoAuthError(AtprotoError):
    """Raised when the configured credentials are rejected."""


@dataclass(frozen=True)
class AtprotoConfig:
    """Immutable configuration for upstream access."""

    service_url: str
    identifier: str | None
    app_password: str | None
    timeout_seconds: float
    user_agent: str

    @property
    def auth_enabled(self) -> bool:
        return bool(self.identifier and self.app_password)


def load_atproto_config() -> AtprotoConfig:
    """Build configuration object from global settings."""

    return AtprotoConfig(
        service_url=settings.atproto_service_url,
        identifier=settings.atproto_identifier,
        app_password=settings.atproto_app_password,
        timeout_seconds=float(settings.atproto_http_timeout_seconds),
        user_agent=settings.atproto_user_agent,
    )


def _error_name(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, Mapping):
        error = payload.get("error")
        return error if isinstance(error, str) else None
    return None


def _json_payload(response: httpx.Response) -> Mapping[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise AtprotoError(
            "Malformed upstream response", status_code=response.status_code
        ) from exc
    if not isinstance(payload, Mapping):
        raise AtprotoError("Malformed upstream response", status_code=response.status_code)
    return payload


class AtprotoClient:
    """HTTP client wrapper for the AT Protocol AppView."""

    def __init__(
        self,
        config: AtprotoConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_atproto_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._access_jwt: str | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.service_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers={"User-Agent": self.config.user_agent},
                    transport=self._transport,
                )
            if self.config.auth_enabled and self._access_jwt is None:
                self._access_jwt = await self._create_session(self._client)
        return self._client

    async def _create_session(self, client: httpx.AsyncClient) -> str:
        try:
            response = await client.post(
                CREATE_SESSION,
                json={
                    "identifier": self.config.identifier,
                    "password": self.config.app_password,
                },
            )
        except httpx.HTTPError as exc:
            raise AtprotoError(f"Session request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise AtprotoAuthError(
                f"Session creation rejected ({response.status_code})",
                status_code=response.status_code,
            )
        token = _json_payload(response).get("accessJwt")
        if not isinstance(token, str) or not token:
            raise AtprotoAuthError("Session response did not include an access token")
        logger.info("Authenticated upstream session for %s", self.config.identifier)
        return token

    async def _get(
        self, path: str, params: Mapping[str, Any], *, retry_auth: bool = True
    ) -> httpx.Response:
        client = await self._ensure_client()
        headers: dict[str, str] = {}
        if self._access_jwt:
            headers["Authorization"] = f"Bearer {self._access_jwt}"

        try:
            response = await client.get(path, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Upstream request %s failed: %s", path, exc)
            raise AtprotoError(f"Upstream request failed: {exc}") from exc

        if self._access_jwt and (
            response.status_code == HTTP_UNAUTHORIZED
            or (
                response.status_code == HTTP_BAD_REQUEST
                and _error_name(response) == EXPIRED_TOKEN
            )
        ):
            logger.info("Upstream session expired; reauthenticating")
            self._access_jwt = None
            if retry_auth:
                return await self._get(path, params, retry_auth=False)
        return response

    async def search_posts(
        self, query: str, limit: int, cursor: str | None = None
    ) -> SearchPage:
        """Fetch one page of full-text search results."""

        params: dict[str, Any] = {"q": query, "limit": limit}
        if cursor:
            params["cursor"] = cursor

        response = await self._get(SEARCH_POSTS, params)
        if response.status_code != HTTP_OK:
            raise AtprotoError(
                f"Unexpected upstream response ({response.status_code}) when searching posts",
                status_code=response.status_code,
            )

        payload = _json_payload(response)
        posts: list[Post] = []
        for view in payload.get("posts") or []:
            if not isinstance(view, Mapping):
                continue
            try:
                posts.append(Post.from_view(view))
            except ValueError as exc:
                logger.debug("Skipping malformed post view: %s", exc)
        cursor_out = payload.get("cursor")
        return SearchPage(posts=posts, cursor=cursor_out if isinstance(cursor_out, str) else None)

    async def get_post_thread(
        self, uri: str, depth: int, parent_height: int
    ) -> ThreadNode | None:
        """Fetch a thread view; returns None when the post does not exist."""

        response = await self._get(
            GET_POST_THREAD,
            {"uri": uri, "depth": depth, "parentHeight": parent_height},
        )
        if response.status_code == HTTP_NOT_FOUND or (
            response.status_code == HTTP_BAD_REQUEST and _error_name(response) == "NotFound"
        ):
            return None
        if response.status_code != HTTP_OK:
            raise AtprotoError(
                f"Unexpected upstream response ({response.status_code}) when fetching thread",
                status_code=response.status_code,
            )

        thread = _json_payload(response).get("thread")
        if not isinstance(thread, Mapping) or thread.get("$type") == NOT_FOUND_POST_TYPE:
            return None
        return ThreadNode.from_view(thread)

    async def close(self) -> None:
        """Close the underlying HTTP client if one was opened."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
                self._access_jwt = None
