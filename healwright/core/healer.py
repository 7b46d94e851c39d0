from __future__ import annotations

import logging
from contextlib import suppress
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from playwright.async_api import Error as PlaywrightError

from healwright.config.loader import ConfigLoader
from healwright.config.schema import HealingConfig, HealwrightSettings
from healwright.core.actions import HealableAction, invoke
from healwright.core.exceptions import RepairParseError
from healwright.core.interpreter import execute, parse_repair, render_arguments, render_python
from healwright.core.metadata import HealedStepLogEntry
from healwright.core.patcher import FilePatcher
from healwright.llm.client import create_completion_client
from healwright.llm.oracle import RepairOracleClient
from healwright.logging.audit import HealedStepLogger
from healwright.utils.dom_extract import extract_page_snapshot

logger = logging.getLogger(__name__)

HIGHLIGHT_SCRIPT = """
(element) => {
  element.style.border = "3px solid #FF00FF";
  element.style.boxShadow = "0 0 10px #FF00FF";
  element.style.transition = "all 0.3s ease";
}
"""
HIGHLIGHT_TIMEOUT_MS = 1000


class Healer:
    """Runs intercepted actions and repairs them through the oracle when they fail."""

    def __init__(
        self,
        page,
        oracle: RepairOracleClient,
        audit_logger: HealedStepLogger,
        patcher: FilePatcher | None = None,
        test_file: str | Path | None = None,
        healing_config: HealingConfig | None = None,
    ) -> None:
        self.page = page
        self.oracle = oracle
        self.audit_logger = audit_logger
        self.patcher = patcher or FilePatcher()
        self.test_file = Path(test_file) if test_file else None
        self.config = healing_config or HealingConfig()

    async def dispatch(
        self,
        target,
        action: HealableAction,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        step_code: str,
        on_page: bool,
    ):
        if self.config.highlight and action.targets_element:
            await self._highlight(target, args, on_page)
        try:
            return await invoke(target, action, args, kwargs)
        except Exception as error:
            logger.warning("Action %r failed: %s", action.value, error)
            if not await self.heal(error, step_code):
                raise
            return None

    async def heal(self, error: Exception, step_code: str) -> bool:
        if not self.config.enabled:
            return False
        logger.info("Self-healing initiated for step: %s", step_code)

        snapshot = await extract_page_snapshot(self.page)
        code = await self.oracle.heal(snapshot, error, step_code)
        if not code:
            return False

        try:
            instructions = parse_repair(code)
        except RepairParseError as exc:
            logger.error("Healed code rejected: %s", exc)
            return False

        logger.info("Applying self-healing fix...")
        try:
            await execute(self.page, instructions)
        except Exception as exc:  # noqa: BLE001 - the original error is re-raised by the caller.
            logger.error("Healed code execution failed: %s", exc)
            return False
        logger.info("Self-healing successful")

        self.audit_logger.write(
            HealedStepLogEntry(
                original_step=step_code,
                error=getattr(error, "message", None) or str(error),
                healed_code=code,
                timestamp=datetime.now(UTC).isoformat(),
                url=self.page.url,
            )
        )
        if self.test_file is not None and self.config.patch_source:
            source = render_python(instructions) if self.test_file.suffix == ".py" else code
            self.patcher.patch(self.test_file, error, source)
        return True

    async def _highlight(self, target, args: tuple[Any, ...], on_page: bool) -> None:
        with suppress(PlaywrightError):
            if on_page:
                if not args or not isinstance(args[0], str):
                    return
                handle = await target.query_selector(args[0])
                if handle is None:
                    return
                await handle.evaluate(HIGHLIGHT_SCRIPT)
            else:
                await target.evaluate(HIGHLIGHT_SCRIPT, timeout=HIGHLIGHT_TIMEOUT_MS)
            await self.page.wait_for_timeout(self.config.highlight_pause_ms)


def _call(description: str, method: str, args: tuple[Any, ...] = (), kwargs: dict[str, Any] | None = None) -> str:
    return f"{description}.{method}({render_arguments(args, kwargs or {})})"


class SelfHealingLocator:
    """Locator wrapper whose actions go through :meth:`Healer.dispatch`."""

    def __init__(self, locator, healer: Healer, description: str) -> None:
        self._locator = locator
        self._healer = healer
        self.description = description

    @property
    def locator_object(self):
        return self._locator

    def _chain(self, locator, suffix: str) -> "SelfHealingLocator":
        return SelfHealingLocator(locator, self._healer, self.description + suffix)

    def locator(self, selector: str, **kwargs) -> "SelfHealingLocator":
        return self._chain(self._locator.locator(selector, **kwargs), _call("", "locator", (selector,), kwargs))

    def get_by_role(self, role: str, **kwargs) -> "SelfHealingLocator":
        return self._chain(self._locator.get_by_role(role, **kwargs), _call("", "get_by_role", (role,), kwargs))

    def get_by_text(self, text, **kwargs) -> "SelfHealingLocator":
        return self._chain(self._locator.get_by_text(text, **kwargs), _call("", "get_by_text", (text,), kwargs))

    def get_by_placeholder(self, text, **kwargs) -> "SelfHealingLocator":
        return self._chain(
            self._locator.get_by_placeholder(text, **kwargs),
            _call("", "get_by_placeholder", (text,), kwargs),
        )

    def get_by_label(self, text, **kwargs) -> "SelfHealingLocator":
        return self._chain(self._locator.get_by_label(text, **kwargs), _call("", "get_by_label", (text,), kwargs))

    def get_by_test_id(self, test_id) -> "SelfHealingLocator":
        return self._chain(self._locator.get_by_test_id(test_id), _call("", "get_by_test_id", (test_id,)))

    def nth(self, index: int) -> "SelfHealingLocator":
        return self._chain(self._locator.nth(index), _call("", "nth", (index,)))

    @property
    def first(self) -> "SelfHealingLocator":
        return self._chain(self._locator.first, ".first")

    @property
    def last(self) -> "SelfHealingLocator":
        return self._chain(self._locator.last, ".last")

    def filter(self, **kwargs) -> "SelfHealingLocator":
        return self._chain(self._locator.filter(**kwargs), _call("", "filter", (), kwargs))

    def parent(self) -> "SelfHealingLocator":
        return self._chain(self._locator.locator("xpath=.."), '.locator("xpath=..")')

    async def _act(self, action: HealableAction, args: tuple[Any, ...], kwargs: dict[str, Any]):
        step_code = "await " + _call(self.description, action.value, args, kwargs)
        return await self._healer.dispatch(self._locator, action, args, kwargs, step_code, on_page=False)

    async def click(self, **kwargs):
        return await self._act(HealableAction.CLICK, (), kwargs)

    async def fill(self, value: str, **kwargs):
        return await self._act(HealableAction.FILL, (value,), kwargs)

    async def check(self, **kwargs):
        return await self._act(HealableAction.CHECK, (), kwargs)

    async def select_option(self, value=None, **kwargs):
        args = () if value is None else (value,)
        return await self._act(HealableAction.SELECT_OPTION, args, kwargs)

    async def hover(self, **kwargs):
        return await self._act(HealableAction.HOVER, (), kwargs)

    def __getattr__(self, name: str):
        return getattr(self._locator, name)


class SelfHealingPage:
    """Page wrapper intercepting the healable actions; everything else passes through."""

    def __init__(self, page, healer: Healer) -> None:
        self._page = page
        self._healer = healer

    @property
    def page(self):
        return self._page

    @property
    def healer(self) -> Healer:
        return self._healer

    async def _act(self, action: HealableAction, args: tuple[Any, ...], kwargs: dict[str, Any]):
        step_code = "await " + _call("page", action.value, args, kwargs)
        return await self._healer.dispatch(self._page, action, args, kwargs, step_code, on_page=True)

    async def click(self, selector: str, **kwargs):
        return await self._act(HealableAction.CLICK, (selector,), kwargs)

    async def fill(self, selector: str, value: str, **kwargs):
        return await self._act(HealableAction.FILL, (selector, value), kwargs)

    async def check(self, selector: str, **kwargs):
        return await self._act(HealableAction.CHECK, (selector,), kwargs)

    async def select_option(self, selector: str, value=None, **kwargs):
        args = (selector,) if value is None else (selector, value)
        return await self._act(HealableAction.SELECT_OPTION, args, kwargs)

    async def hover(self, selector: str, **kwargs):
        return await self._act(HealableAction.HOVER, (selector,), kwargs)

    async def goto(self, url: str, **kwargs):
        return await self._act(HealableAction.GOTO, (url,), kwargs)

    def _wrap(self, locator, description: str) -> SelfHealingLocator:
        return SelfHealingLocator(locator, self._healer, description)

    def locator(self, selector: str, **kwargs) -> SelfHealingLocator:
        return self._wrap(self._page.locator(selector, **kwargs), _call("page", "locator", (selector,), kwargs))

    def get_by_role(self, role: str, **kwargs) -> SelfHealingLocator:
        return self._wrap(self._page.get_by_role(role, **kwargs), _call("page", "get_by_role", (role,), kwargs))

    def get_by_text(self, text, **kwargs) -> SelfHealingLocator:
        return self._wrap(self._page.get_by_text(text, **kwargs), _call("page", "get_by_text", (text,), kwargs))

    def get_by_placeholder(self, text, **kwargs) -> SelfHealingLocator:
        return self._wrap(
            self._page.get_by_placeholder(text, **kwargs),
            _call("page", "get_by_placeholder", (text,), kwargs),
        )

    def get_by_label(self, text, **kwargs) -> SelfHealingLocator:
        return self._wrap(self._page.get_by_label(text, **kwargs), _call("page", "get_by_label", (text,), kwargs))

    def get_by_test_id(self, test_id) -> SelfHealingLocator:
        return self._wrap(self._page.get_by_test_id(test_id), _call("page", "get_by_test_id", (test_id,)))

    def __getattr__(self, name: str):
        return getattr(self._page, name)


def create_self_healing_page(
    page,
    test_file: str | Path | None = None,
    settings: HealwrightSettings | None = None,
    oracle: RepairOracleClient | None = None,
) -> SelfHealingPage:
    """Wraps a Playwright page so failing actions are repaired and patched back into ``test_file``.

    Patching rewrites the test source in place.
    """

    settings = settings or ConfigLoader.from_env()
    if oracle is None:
        try:
            completion_client = create_completion_client(settings.oracle)
        except RuntimeError as exc:
            logger.warning("Self-healing oracle unavailable: %s", exc)
            completion_client = None
        oracle = RepairOracleClient(completion_client, settings.healing.max_prompt_elements)
    healer = Healer(
        page,
        oracle,
        HealedStepLogger(settings.healing.audit_log_path),
        FilePatcher(),
        test_file,
        settings.healing,
    )
    return SelfHealingPage(page, healer)
