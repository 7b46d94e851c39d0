from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from healwright.config.schema import BrowserConfig
from healwright.core.browser import BrowserSession
from healwright.core.finder import Resolver
from healwright.core.heal_store import HealStore
from healwright.utils.dom_extract import extract_page_snapshot

LOGIN_FORM = """
<form>
  <label for="user">Username</label>
  <input id="user" name="username" />
  <input type="password" name="password" placeholder="Password" />
  <button type="submit">Sign in</button>
</form>
"""


@pytest.mark.integration
def test_resolver_fills_form_in_real_browser(tmp_path):
    async def run():
        session = BrowserSession(BrowserConfig(headless=True))
        try:
            page = await session.start()
        except PlaywrightError as exc:
            pytest.skip(f"Chromium is not available: {exc}")
        try:
            await page.set_content(LOGIN_FORM)
            store = HealStore(tmp_path / "selectors.json")
            resolver = Resolver(page, store)
            filled = await resolver.resolve_and_act("fill", "Username", "alice")
            value = await page.locator("#user").input_value()
            snapshot = await extract_page_snapshot(page)
            return filled, value, snapshot
        finally:
            await session.close()

    filled, value, snapshot = asyncio.run(run())

    assert filled is True
    assert value == "alice"
    assert any("#user" in element.selectors for element in snapshot.elements)
