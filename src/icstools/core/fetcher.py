"""
Upstream calendar fetcher.

Owns one aiohttp session for the lifetime of the app. Each fetch is
independent: no caching, no retries.
"""

import asyncio
import time
from typing import Optional

import aiohttp
import structlog

from ..config import FetchSettings
from .exceptions import UpstreamFetchError

logger = structlog.get_logger(__name__)


class UpstreamFetcher:
    """
    Retrieves remote calendar documents.

    Handles:
    - Session lifecycle
    - Timeouts
    - Status and size checks
    """

    def __init__(self, settings: FetchSettings):
        self.settings = settings
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(
            "Upstream fetcher initialized",
            timeout_seconds=settings.timeout_seconds,
            max_bytes=settings.max_bytes,
        )

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds),
            headers={"User-Agent": self.settings.user_agent},
        )
        logger.info("Upstream fetcher started")

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

        logger.info("Upstream fetcher stopped")

    async def fetch(self, url: str) -> bytes:
        """
        Fetch the body of ``url``.

        Raises:
            UpstreamFetchError: transport failure, non-2xx status, or a body
                larger than the configured maximum
        """
        if self.session is None:
            raise UpstreamFetchError(url, "fetcher not started")

        start_time = time.perf_counter()
        try:
            async with self.session.get(url) as response:
                if response.status < 200 or response.status >= 300:
                    raise UpstreamFetchError(
                        url,
                        f"upstream replied with status {response.status}",
                        status=response.status,
                    )

                if response.content_length is not None and response.content_length > self.settings.max_bytes:
                    raise UpstreamFetchError(url, "upstream document too large", status=response.status)

                chunks = []
                size = 0
                async for chunk in response.content.iter_chunked(65536):
                    size += len(chunk)
                    if size > self.settings.max_bytes:
                        raise UpstreamFetchError(url, "upstream document too large", status=response.status)
                    chunks.append(chunk)
                body = b"".join(chunks)

        except aiohttp.ClientError as e:
            raise UpstreamFetchError(url, f"{type(e).__name__}: {e}") from e
        except asyncio.TimeoutError as e:
            raise UpstreamFetchError(url, "timed out") from e

        logger.debug(
            "Fetched upstream calendar",
            size_bytes=len(body),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 3),
        )
        return body

