from __future__ import annotations

import logging
from contextlib import suppress

from playwright.async_api import Error as PlaywrightError

from healwright.core.heal_store import HealDescriptor, HealStore
from healwright.utils.candidates import generate_heuristic_candidates, generate_semantic_candidates
from healwright.utils.scoring import score_candidates

logger = logging.getLogger(__name__)

ACTION_KINDS = {"click", "fill", "select"}
NETWORK_IDLE_CAP_MS = 3000


class Resolver:
    """Resolves a described target to a working locator and performs the action on it."""

    def __init__(self, page, heal_store: HealStore | None = None, default_timeout_ms: int = 3000) -> None:
        self.page = page
        self.heal_store = heal_store
        self.default_timeout_ms = default_timeout_ms
        self.selector_cache: dict[tuple[str, str], object] = {}

    async def resolve_and_act(
        self,
        kind: str,
        target: str,
        value: str | None = None,
        timeout_ms: int | None = None,
    ) -> bool:
        if kind not in ACTION_KINDS:
            raise ValueError(f"Unsupported action kind: {kind}")
        timeout = self.default_timeout_ms if timeout_ms is None else timeout_ms
        cache_key = (kind, target)

        cached = self.selector_cache.get(cache_key)
        if cached is not None:
            try:
                await self.perform(kind, cached, value, timeout)
                return True
            except PlaywrightError as exc:
                logger.info("[heal] cached locator for %s %r failed: %s", kind, target, exc)

        if self.heal_store is not None:
            persisted = self.heal_store.get_persisted_selector(self.page, kind, target)
            if persisted is not None:
                try:
                    await self.perform(kind, persisted, value, timeout)
                    self.selector_cache[cache_key] = persisted
                    return True
                except PlaywrightError as exc:
                    logger.info("[heal] persisted selector failed, continuing resolution: %s", exc)

        for candidate in generate_semantic_candidates(kind, target):
            try:
                locator = candidate.to_locator(self.page)
                if await locator.count() == 0:
                    continue
                await self.perform(kind, locator.first, value, timeout)
            except PlaywrightError as exc:
                logger.debug("[heal] %s failed for %s: %s", kind, candidate.describe(), exc)
                continue
            self._remember(cache_key, locator.first, candidate.to_descriptor())
            return True

        for scored in await score_candidates(self.page, generate_heuristic_candidates(target)):
            locator = scored.locator.first
            try:
                await self.perform(kind, locator, value, timeout)
            except PlaywrightError as exc:
                logger.info("[heal] %s failed for %s: %s", kind, scored.candidate.describe(), exc)
                continue
            self._remember(cache_key, locator, scored.candidate.to_descriptor())
            return True

        logger.warning("[heal] no candidate could %s %r", kind, target)
        return False

    def _remember(self, cache_key: tuple[str, str], locator, descriptor: HealDescriptor) -> None:
        kind, target = cache_key
        self.selector_cache[cache_key] = locator
        if self.heal_store is not None:
            self.heal_store.persist_healed_selector(kind, target, descriptor)

    async def perform(self, kind: str, locator, value: str | None, timeout_ms: int) -> None:
        if kind == "click":
            await locator.click(timeout=timeout_ms)
            with suppress(PlaywrightError):
                await self.page.wait_for_load_state(
                    "networkidle",
                    timeout=min(timeout_ms, NETWORK_IDLE_CAP_MS),
                )
        elif kind == "fill":
            await locator.fill(value or "", timeout=timeout_ms)
        elif kind == "select":
            await locator.select_option(value, timeout=timeout_ms)
        else:
            raise ValueError(f"Unsupported action kind: {kind}")
