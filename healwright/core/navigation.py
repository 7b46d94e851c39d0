from __future__ import annotations

import asyncio
import logging
import re
from contextlib import suppress
from typing import Callable

from playwright.async_api import Error as PlaywrightError

from healwright.core.metadata import NavigationResult
from healwright.utils.http import fetch_text

logger = logging.getLogger(__name__)

FALLBACK_WAIT_STATES = ("load", "domcontentloaded", "networkidle")
READINESS_CAP_MS = 15000
SCRIPT_TAG = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)


def wait_strategy_chain(preferred: str | None) -> list[str]:
    chain: list[str] = []
    for state in (preferred, *FALLBACK_WAIT_STATES):
        if state and state not in chain:
            chain.append(state)
    return chain


class Navigator:
    """Loads a URL through a chain of wait strategies with a static-HTML fallback."""

    def __init__(
        self,
        page,
        fetch_html: Callable[[str, float], str] = fetch_text,
        snapshot_timeout_ms: int = READINESS_CAP_MS,
    ) -> None:
        self.page = page
        self.fetch_html = fetch_html
        self.snapshot_timeout_ms = snapshot_timeout_ms

    async def navigate(
        self,
        url: str,
        timeout_ms: int = 15000,
        wait_until: str = "load",
        retries: int = 1,
    ) -> NavigationResult:
        chain = wait_strategy_chain(wait_until)
        last_error: Exception | None = None

        for attempt in range(retries + 1):
            for state in chain:
                logger.info(
                    "Navigating (attempt %d/%d) wait_until=%s timeout=%dms",
                    attempt + 1,
                    retries + 1,
                    state,
                    timeout_ms,
                )
                try:
                    await self.page.goto(url, wait_until=state, timeout=timeout_ms)
                except PlaywrightError as exc:
                    last_error = exc
                    logger.warning("Navigation failed with wait_until=%s: %s", state, exc)
                    continue
                with suppress(PlaywrightError):
                    await self.page.wait_for_load_state(
                        "domcontentloaded",
                        timeout=min(timeout_ms, READINESS_CAP_MS),
                    )
                return NavigationResult(url=url, wait_until=state, attempt=attempt)

        logger.warning("Navigation failed after %d attempt(s), attempting HTML snapshot fallback", retries + 1)
        try:
            await self.load_html_snapshot(url, timeout_ms)
        except Exception as snapshot_error:  # noqa: BLE001 - degraded mode is best-effort; the navigation error is reported.
            logger.warning("HTML snapshot fallback failed: %s", snapshot_error)
            if last_error is None:
                raise
            raise last_error from snapshot_error
        return NavigationResult(url=url, wait_until=None, attempt=retries, degraded=True)

    async def load_html_snapshot(self, url: str, timeout_ms: int) -> None:
        """Loads statically fetched HTML into the page; scripts do not run."""

        timeout_seconds = min(timeout_ms, self.snapshot_timeout_ms) / 1000
        html = await asyncio.to_thread(self.fetch_html, url, timeout_seconds)
        await self.page.set_content(SCRIPT_TAG.sub("", html), wait_until="domcontentloaded")
        logger.info("HTML snapshot loaded for basic extraction of %s", url)
