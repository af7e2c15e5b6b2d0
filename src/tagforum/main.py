# src/tagforum/main.py
"""Main entry point for the Tagforum application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from tagforum.api.v1 import (
    communities_router,
    community_membership_router,
    feed_router,
    threads_router,
)
from tagforum.core.settings import settings
from tagforum.db.session import create_tables
from tagforum.services.atproto import AtprotoClient
from tagforum.services.feed_poller import TagFeedPoller

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Tagforum API",
    description="Hashtag communities and threaded discussions over AT Protocol search",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(communities_router, prefix=settings.api_prefix)
app.include_router(community_membership_router, prefix=settings.api_prefix)
app.include_router(feed_router, prefix=settings.api_prefix)
app.include_router(threads_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    create_tables()

    client = AtprotoClient()
    app.state.atproto_client = client

    pollers: dict[str, TagFeedPoller] = {}
    for tag in settings.feed_watched_tags:
        poller = TagFeedPoller(client, tag)
        await poller.start()
        pollers[poller.tag.lower()] = poller
        logger.info("Watching #%s every %.1fs", poller.tag, poller.interval_seconds)
    app.state.feed_pollers = pollers


@app.on_event("shutdown")
async def on_shutdown() -> None:
    pollers: dict[str, TagFeedPoller] = getattr(app.state, "feed_pollers", None) or {}
    for poller in pollers.values():
        await poller.stop()
    client: AtprotoClient | None = getattr(app.state, "atproto_client", None)
    if client:
        await client.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tagforum.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
