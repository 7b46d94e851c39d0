from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from healwright.llm.client import TextCompletionClient


def _pattern(value) -> str:
    if isinstance(value, re.Pattern):
        return value.pattern
    return str(value)


@dataclass
class ActionRecord:
    key: str
    action: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any]


class FakeHandle:
    def __init__(self, page: "FakePage", key: str) -> None:
        self.page = page
        self.key = key

    async def evaluate(self, script, *args):
        self.page.highlighted.append(self.key)


class FakeLocator:
    """Mimics the slice of ``playwright.async_api.Locator`` healwright touches."""

    def __init__(self, page: "FakePage", key: str) -> None:
        self.page = page
        self.key = key

    async def count(self) -> int:
        self.page.count_calls += 1
        if self.key in self.page.invalid:
            raise PlaywrightError(f"Unexpected token in selector {self.key}")
        return self.page.counts.get(self.key, 0)

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self.page, self.key)

    @property
    def last(self) -> "FakeLocator":
        return FakeLocator(self.page, self.key)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.page, self.key)

    def filter(self, **kwargs) -> "FakeLocator":
        return FakeLocator(self.page, self.key)

    def locator(self, selector: str, **kwargs) -> "FakeLocator":
        return FakeLocator(self.page, f"{self.key} >> {selector}")

    def get_by_role(self, role: str, **kwargs) -> "FakeLocator":
        return FakeLocator(self.page, f"{self.key} >> {self.page.role_key(role, **kwargs)}")

    async def evaluate(self, script, *args, **kwargs):
        self.page.highlighted.append(self.key)

    async def _act(self, action: str, *args, **kwargs) -> None:
        self.page.actions.append(ActionRecord(self.key, action, args, kwargs))
        if self.key in self.page.failing or self.page.counts.get(self.key, 0) == 0:
            raise PlaywrightTimeoutError(f"Timeout exceeded waiting for {self.key}")

    async def click(self, **kwargs):
        await self._act("click", **kwargs)

    async def fill(self, value: str, **kwargs):
        await self._act("fill", value, **kwargs)

    async def check(self, **kwargs):
        await self._act("check", **kwargs)

    async def select_option(self, value=None, **kwargs):
        await self._act("select_option", value, **kwargs)

    async def hover(self, **kwargs):
        await self._act("hover", **kwargs)


@dataclass
class FakePage:
    """In-memory page: ``counts`` maps locator keys to how many elements they match."""

    counts: dict[str, int] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    invalid: set[str] = field(default_factory=set)
    url: str = "https://app.test/login"
    closed: bool = False
    goto_failures: set[str] = field(default_factory=set)
    dom_payload: dict[str, Any] = field(default_factory=lambda: {"elements": [], "formFields": []})
    evaluate_error: Exception | None = None
    count_calls: int = 0
    actions: list[ActionRecord] = field(default_factory=list)
    load_states: list[tuple[str, int | None]] = field(default_factory=list)
    goto_calls: list[tuple[str, str | None]] = field(default_factory=list)
    contents: list[str] = field(default_factory=list)
    highlighted: list[str] = field(default_factory=list)
    waits: list[int] = field(default_factory=list)

    @staticmethod
    def role_key(role: str, name=None, **kwargs) -> str:
        return f"role={role}:{_pattern(name)}" if name is not None else f"role={role}"

    def locator(self, selector: str, **kwargs) -> FakeLocator:
        return FakeLocator(self, selector)

    def get_by_label(self, text, **kwargs) -> FakeLocator:
        return FakeLocator(self, f"label={_pattern(text)}")

    def get_by_role(self, role: str, **kwargs) -> FakeLocator:
        return FakeLocator(self, self.role_key(role, **kwargs))

    def get_by_text(self, text, **kwargs) -> FakeLocator:
        return FakeLocator(self, f"text={_pattern(text)}")

    def get_by_placeholder(self, text, **kwargs) -> FakeLocator:
        return FakeLocator(self, f"placeholder={_pattern(text)}")

    def get_by_test_id(self, test_id) -> FakeLocator:
        return FakeLocator(self, f"testid={_pattern(test_id)}")

    def is_closed(self) -> bool:
        return self.closed

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None):
        self.goto_calls.append((url, wait_until))
        if wait_until in self.goto_failures or "*" in self.goto_failures:
            raise PlaywrightTimeoutError(f"page.goto: Timeout {timeout}ms exceeded (wait_until={wait_until})")
        self.url = url

    async def wait_for_load_state(self, state: str = "load", timeout: int | None = None):
        self.load_states.append((state, timeout))

    async def wait_for_timeout(self, timeout: int):
        self.waits.append(timeout)

    async def set_content(self, html: str, wait_until: str | None = None):
        self.contents.append(html)

    async def evaluate(self, script, *args):
        if self.evaluate_error is not None:
            raise self.evaluate_error
        return self.dom_payload

    async def title(self) -> str:
        return "Login"

    async def query_selector(self, selector: str):
        if self.counts.get(selector, 0):
            return FakeHandle(self, selector)
        return None

    async def _page_act(self, action: str, selector: str, *args, **kwargs):
        self.actions.append(ActionRecord(selector, action, args, kwargs))
        if selector in self.failing or self.counts.get(selector, 0) == 0:
            raise PlaywrightTimeoutError(f"page.{action}: Timeout exceeded waiting for locator('{selector}')")

    async def click(self, selector: str, **kwargs):
        await self._page_act("click", selector, **kwargs)

    async def fill(self, selector: str, value: str, **kwargs):
        await self._page_act("fill", selector, value, **kwargs)

    async def check(self, selector: str, **kwargs):
        await self._page_act("check", selector, **kwargs)

    async def hover(self, selector: str, **kwargs):
        await self._page_act("hover", selector, **kwargs)

    async def select_option(self, selector: str, value=None, **kwargs):
        await self._page_act("select_option", selector, value, **kwargs)


class StaticCompletionClient(TextCompletionClient):
    """Completion client returning a canned reply and recording prompts."""

    provider_name = "static"

    def __init__(self, reply: str | None = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.reply or ""


def element_payload(count: int) -> dict[str, Any]:
    return {
        "elements": [
            {
                "type": "input",
                "tagName": "input",
                "index": index,
                "attributes": {"name": f"field{index}"},
                "text": "",
                "selectors": [f'[name="field{index}"]', f"input:nth-child({index + 1})"],
            }
            for index in range(count)
        ],
        "formFields": [],
    }
