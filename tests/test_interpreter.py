from __future__ import annotations

import asyncio
import re

import pytest

from healwright.core.actions import HealableAction
from healwright.core.exceptions import RepairParseError
from healwright.core.interpreter import ChainCall, RegexLiteral, execute, parse_repair, render_python
from tests.helpers import FakePage


def test_parses_javascript_call_chain():
    [instruction] = parse_repair("await page.getByRole('button', { name: 'Submit' }).click();")

    assert instruction.action is HealableAction.CLICK
    assert instruction.chain == [ChainCall("get_by_role", ("button",), {"name": "Submit"})]
    assert instruction.to_python() == 'await page.get_by_role("button", name="Submit").click()'


def test_parses_python_call_chain_with_properties():
    [instruction] = parse_repair('await page.locator("#email").first.fill("a@b.c")')

    assert instruction.action is HealableAction.FILL
    assert [call.method for call in instruction.chain] == ["locator", "first"]
    assert instruction.args == ("a@b.c",)
    assert instruction.to_python(awaited=False) == 'page.locator("#email").first.fill("a@b.c")'


def test_parses_javascript_regex_and_option_keys():
    [instruction] = parse_repair("await page.getByRole('link', { name: /sign in/i, exact: false }).click()")

    call = instruction.chain[0]
    assert call.kwargs == {"name": RegexLiteral("sign in", "i"), "exact": False}
    assert render_python([instruction]) == (
        'await page.get_by_role("link", name=re.compile("sign in", re.IGNORECASE), exact=False).click()'
    )


def test_slashes_inside_strings_are_not_regex_literals():
    [instruction] = parse_repair('await page.locator("text=Plan: /month/").click()')
    assert instruction.chain == [ChainCall("locator", ("text=Plan: /month/",))]

    [instruction] = parse_repair("await page.getByText('a, /b/', { exact: true }).click()")
    assert instruction.chain == [ChainCall("get_by_text", ("a, /b/",), {"exact": True})]


def test_parses_fenced_multi_statement_reply():
    reply = "```javascript\n// fill then submit\nawait page.fill('#user', 'alice');\nawait page.selectOption('#role', 'admin');\n```"
    instructions = parse_repair(reply)

    assert [instruction.action for instruction in instructions] == [HealableAction.FILL, HealableAction.SELECT_OPTION]
    assert instructions[0].args == ("#user", "alice")
    assert instructions[1].chain == []


def test_parses_json_dsl():
    [instruction] = parse_repair('{"action": "fill", "locatorStrategy": "label", "name": "Email", "value": "a@b.c"}')

    assert instruction.action is HealableAction.FILL
    assert instruction.chain == [ChainCall("get_by_label", ("Email",)), ChainCall("first")]
    assert instruction.args == ("a@b.c",)


def test_json_dsl_role_with_index_and_goto():
    instructions = parse_repair(
        '[{"action": "goto", "url": "https://app.test/login"},'
        ' {"action": "click", "locatorStrategy": "role", "role": "button", "name": "Go", "nth": 1}]'
    )

    assert instructions[0].action is HealableAction.GOTO
    assert instructions[0].args == ("https://app.test/login",)
    assert instructions[1].chain == [ChainCall("get_by_role", ("button",), {"name": "Go"}), ChainCall("nth", (1,))]


@pytest.mark.parametrize(
    "reply",
    [
        "",
        "import os",
        'await page.evaluate("document.body.remove()")',
        'await page.locator("#a").evaluate("x").click()',
        "await page.locator(selector).click()",
        'await browser.newPage().click("#a")',
        '__import__("os").system("rm -rf /")',
        'await page.locator("#a").goto("https://evil.test")',
        '{"action": "fill", "locatorStrategy": "label", "name": "Email"}',
        '{"action": "click", "locatorStrategy": "shadow", "selector": "#a"}',
        "The button moved, try clicking Submit instead.",
    ],
)
def test_rejects_unsupported_repairs(reply):
    with pytest.raises(RepairParseError):
        parse_repair(reply)


def test_execute_replays_against_page():
    page = FakePage(counts={"role=button:Submit": 1, "#user": 1})
    instructions = parse_repair(
        "await page.fill('#user', 'alice')\nawait page.getByRole('button', { name: 'Submit' }).click()"
    )

    asyncio.run(execute(page, instructions))

    assert [(action.key, action.action) for action in page.actions] == [
        ("#user", "fill"),
        ("role=button:Submit", "click"),
    ]


def test_execute_compiles_regex_arguments():
    page = FakePage()
    calls = []

    def get_by_role(role, name=None, **kwargs):
        calls.append(name)
        return page.locator("#target")

    page.counts["#target"] = 1
    page.get_by_role = get_by_role
    asyncio.run(execute(page, parse_repair("await page.getByRole('button', { name: /save/i }).click()")))

    assert isinstance(calls[0], re.Pattern)
    assert calls[0].flags & re.IGNORECASE
