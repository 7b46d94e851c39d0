from __future__ import annotations

import json
from typing import Any

SYSTEM_PROMPT = """You are an expert Playwright automation engineer. A test step failed.
Return ONLY the corrected Playwright code that performs the intended action. Assume a `page` object is available.
Rules:
1. Use only elements present in the provided DOM context.
2. Write one statement per line, rooted at `page`, for example:
   await page.get_by_role("button", name="Submit").click()
3. Locate elements with locator, get_by_role, get_by_label, get_by_text, get_by_placeholder, get_by_test_id,
   nth, first, last or filter; finish with click, fill, check, select_option, hover or goto.
4. Arguments must be plain string, number or boolean literals.
5. No markdown, no comments, no explanations."""


def build_user_prompt(failed_step: str, error: str, url: str, elements: list[dict[str, Any]]) -> str:
    return (
        f'Step failed: "{failed_step}"\n'
        f'Error: "{error}"\n'
        f"Current URL: {url}\n\n"
        "DOM Context (Interactive Elements):\n"
        f"{json.dumps(elements, indent=2)}\n\n"
        "Provide the corrected Playwright code to execute this step."
    )
