from __future__ import annotations

import logging
from datetime import UTC, datetime

from playwright.async_api import Error as PlaywrightError
from pydantic import BaseModel, ConfigDict, Field

from healwright.config.schema import HealwrightSettings
from healwright.core.browser import BrowserSession
from healwright.core.finder import Resolver
from healwright.core.heal_store import HealStore
from healwright.core.metadata import JourneyAnalysis, PageSnapshot, StepAnalysis
from healwright.core.navigation import Navigator
from healwright.utils.dom_extract import extract_page_snapshot, remove_duplicate_elements

logger = logging.getLogger(__name__)

STEP_SETTLE_MS = 1000


class JourneyStep(BaseModel):
    action: str = "click"
    target: str = ""
    value: str = ""
    url: str | None = None
    original_text: str | None = Field(default=None, alias="originalText")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def label(self) -> str:
        return self.original_text or self.action


class PageAnalysisSession:
    """One browser, one heal store, and the analyses run against them.

    Use as ``async with PageAnalysisSession(settings) as session``; leaving the
    block closes the browser and flushes the heal store.
    """

    def __init__(
        self,
        settings: HealwrightSettings | None = None,
        browser_session: BrowserSession | None = None,
        heal_store: HealStore | None = None,
    ) -> None:
        self.settings = settings or HealwrightSettings()
        self.browser_session = browser_session or BrowserSession(self.settings.browser)
        healing = self.settings.healing
        self.heal_store = heal_store or HealStore(healing.store_path, enabled=healing.enabled, persist=healing.persist)
        self.page = None
        self.navigator: Navigator | None = None
        self.resolver: Resolver | None = None

    async def __aenter__(self) -> "PageAnalysisSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        self.heal_store.load()
        self.page = await self.browser_session.start()
        self.navigator = Navigator(self.page, snapshot_timeout_ms=self.settings.navigation.snapshot_timeout_ms)
        self.resolver = Resolver(self.page, self.heal_store, self.settings.healing.action_timeout_ms)

    async def close(self) -> None:
        try:
            await self.browser_session.close()
        except PlaywrightError as exc:
            logger.warning("Browser cleanup error: %s", exc)
        finally:
            self.heal_store.save()
            self.page = None

    async def _ensure_page(self) -> None:
        if self.page is None or self.page.is_closed():
            logger.info("Page is closed, reinitializing")
            await self.start()

    async def analyze_page(
        self,
        url: str,
        timeout_ms: int | None = None,
        wait_until: str | None = None,
        retries: int | None = None,
    ) -> PageSnapshot:
        navigation = self.settings.navigation
        await self._ensure_page()
        logger.info("Analyzing DOM structure for %s", url)
        try:
            await self.navigator.navigate(
                url,
                timeout_ms=navigation.timeout_ms if timeout_ms is None else timeout_ms,
                wait_until=wait_until or navigation.wait_until,
                retries=navigation.retries if retries is None else retries,
            )
        except PlaywrightError as exc:
            logger.warning("Navigation and HTML snapshot both failed for %s: %s", url, exc)
            return PageSnapshot(
                url=url,
                timestamp=datetime.now(UTC).isoformat(),
                error=f"DOM analysis failed - page navigation and HTML snapshot both failed: {exc}",
            )
        snapshot = await extract_page_snapshot(self.page)
        snapshot.url = url
        return snapshot

    async def resolve_and_act(self, kind: str, target: str, value: str | None = None, timeout_ms: int | None = None) -> bool:
        await self._ensure_page()
        return await self.resolver.resolve_and_act(kind, target, value, timeout_ms)

    async def execute_step(self, step: JourneyStep, timeout_ms: int) -> str:
        """Performs one described step; returns the URL afterwards and never raises."""

        action = step.action or "click"
        logger.info("Executing step: %s on %r with value %r", action, step.target, step.value)
        try:
            if action in ("navigate", "goto"):
                url = step.url or step.target or step.original_text or ""
                if url.startswith("http"):
                    await self.page.goto(url, wait_until="load", timeout=timeout_ms)
                    return self.page.url
            elif action == "click" and step.target:
                if await self.resolver.resolve_and_act("click", step.target, step.value, timeout_ms):
                    return self.page.url
            elif action in ("fill", "type") and step.target and step.value:
                if await self.resolver.resolve_and_act("fill", step.target, step.value, timeout_ms):
                    return self.page.url
            elif action == "select" and step.target and step.value:
                if await self.resolver.resolve_and_act("select", step.target, step.value, timeout_ms):
                    return self.page.url
            await self.page.wait_for_timeout(STEP_SETTLE_MS)
        except PlaywrightError as exc:
            logger.warning("Step execution failed: %s", exc)
        return self.page.url

    async def analyze_user_journey(
        self,
        base_url: str,
        steps: list[JourneyStep | dict] | None = None,
        timeout_ms: int | None = None,
        wait_until: str | None = None,
        retries: int | None = None,
    ) -> JourneyAnalysis:
        navigation = self.settings.navigation
        timeout = navigation.timeout_ms if timeout_ms is None else timeout_ms
        parsed_steps = [step if isinstance(step, JourneyStep) else JourneyStep.model_validate(step) for step in steps or []]
        started = datetime.now(UTC).isoformat()

        try:
            await self._ensure_page()
            logger.info("Analyzing user journey from %s with %d step(s)", base_url, len(parsed_steps))
            await self.navigator.navigate(
                base_url,
                timeout_ms=timeout,
                wait_until=wait_until or navigation.wait_until,
                retries=navigation.retries if retries is None else retries,
            )
            initial = await extract_page_snapshot(self.page)
            all_elements = list(initial.elements)
            page_analysis = [StepAnalysis(url=base_url, elements=initial.elements, step="Initial page load", step_index=0)]

            current_url = base_url
            for index, step in enumerate(parsed_steps[: self.settings.healing.max_journey_steps], start=1):
                logger.info("Analyzing step %d: %s", index, step.label)
                new_url = await self.execute_step(step, timeout)
                if not new_url or new_url == current_url:
                    continue
                current_url = new_url
                logger.info("Step %d navigated to %s", index, current_url)
                snapshot = await extract_page_snapshot(self.page)
                all_elements.extend(snapshot.elements)
                page_analysis.append(
                    StepAnalysis(url=current_url, elements=snapshot.elements, step=step.label, step_index=index)
                )
        except PlaywrightError as exc:
            logger.error("User journey analysis failed: %s", exc)
            return JourneyAnalysis(url=base_url, timestamp=started, error=f"User journey analysis failed: {exc}")

        unique = remove_duplicate_elements(all_elements)
        logger.info(
            "User journey analysis completed: %d unique elements across %d page(s)",
            len(unique),
            len(page_analysis),
        )
        return JourneyAnalysis(url=base_url, timestamp=started, elements=unique, page_analysis=page_analysis)
