"""Maps repair-oracle replies onto the healable action set without evaluating them.

Two reply shapes are understood:

* a JSON object (or array of objects) such as
  ``{"action": "click", "locatorStrategy": "role", "role": "button", "name": "Submit"}``;
* Playwright call chains rooted at ``page``, one statement per line, written
  either in Python (``await page.get_by_role("button", name="Submit").click()``)
  or JavaScript (``await page.getByRole('button', { name: 'Submit' }).click();``).

Call chains are read with :mod:`ast`. Only whitelisted locator methods, a final
:class:`HealableAction`, and literal arguments are accepted.
"""

from __future__ import annotations

import ast
import json
import re
from dataclasses import dataclass, field
from typing import Any

from healwright.core.actions import (
    CHAIN_METHODS,
    PROPERTY_METHODS,
    HealableAction,
    chain_step,
    invoke,
    snake_name,
)
from healwright.core.exceptions import RepairParseError
from healwright.llm.parser import strip_code_fences

REGEX_LITERAL = re.compile(
    r"(?P<string>\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*')"
    r"|(?<=[(,:])(?P<space>\s*)/(?P<pattern>(?:\\.|[^/\\\n])+)/(?P<flags>[gimsuy]*)"
)
LINE_COMMENT = re.compile(r"^\s*(//|#).*$", re.MULTILINE)
JS_CONSTANTS = {"true": True, "false": False, "null": None, "undefined": None, "True": True, "False": False, "None": None}
REGEX_MARKER = "__regex__"

DSL_LOCATORS = {
    "role": "get_by_role",
    "label": "get_by_label",
    "text": "get_by_text",
    "placeholder": "get_by_placeholder",
    "testid": "get_by_test_id",
    "test_id": "get_by_test_id",
    "css": "locator",
    "selector": "locator",
    "xpath": "locator",
}


@dataclass(slots=True, frozen=True)
class RegexLiteral:
    pattern: str
    flags: str = ""

    def compile(self) -> re.Pattern[str]:
        flags = re.IGNORECASE if "i" in self.flags else 0
        return re.compile(self.pattern, flags)


@dataclass(slots=True)
class ChainCall:
    method: str
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RepairInstruction:
    action: HealableAction
    chain: list[ChainCall] = field(default_factory=list)
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)

    def to_python(self, awaited: bool = True) -> str:
        parts = ["page"]
        for call in self.chain:
            if call.method in PROPERTY_METHODS:
                parts.append(f".{call.method}")
            else:
                parts.append(f".{call.method}({render_arguments(call.args, call.kwargs)})")
        parts.append(f".{self.action.value}({render_arguments(self.args, self.kwargs)})")
        statement = "".join(parts)
        return f"await {statement}" if awaited else statement


def parse_repair(text: str) -> list[RepairInstruction]:
    source = strip_code_fences(text)
    if not source:
        raise RepairParseError("Repair reply is empty")
    if source[0] in "{[":
        try:
            payload = json.loads(source)
        except ValueError:
            payload = None
        if payload is not None:
            items = payload if isinstance(payload, list) else [payload]
            instructions = [_from_dsl(item) for item in items]
            if not instructions:
                raise RepairParseError("Repair reply contains no actions")
            return instructions
    return _from_source(source)


def _from_dsl(item: Any) -> RepairInstruction:
    if not isinstance(item, dict):
        raise RepairParseError("Repair DSL entries must be objects")
    action = _action(snake_name(str(item.get("action", ""))))
    value = item.get("value")

    if action is HealableAction.GOTO:
        url = item.get("url") or value
        if not url:
            raise RepairParseError("goto requires a url")
        return RepairInstruction(action=action, args=(url,))

    strategy = str(item.get("locatorStrategy") or item.get("strategy") or "css").lower().replace("-", "")
    method = DSL_LOCATORS.get(strategy)
    if method is None:
        raise RepairParseError(f"Unsupported locator strategy: {strategy}")

    chain: list[ChainCall] = []
    if method == "get_by_role":
        role = item.get("role")
        if not role:
            raise RepairParseError("role strategy requires a role")
        kwargs = {"name": item["name"]} if item.get("name") else {}
        if "exact" in item:
            kwargs["exact"] = bool(item["exact"])
        chain.append(ChainCall("get_by_role", (role,), kwargs))
    elif method == "locator":
        selector = item.get("selector")
        if not selector:
            raise RepairParseError("css strategy requires a selector")
        if strategy == "xpath" and not selector.startswith("xpath="):
            selector = f"xpath={selector}"
        chain.append(ChainCall("locator", (selector,)))
    else:
        name = item.get("name") or item.get("text")
        if not name:
            raise RepairParseError(f"{strategy} strategy requires a name")
        chain.append(ChainCall(method, (name,)))

    if isinstance(item.get("nth"), int):
        chain.append(ChainCall("nth", (item["nth"],)))
    else:
        chain.append(ChainCall("first"))

    args: tuple[Any, ...] = ()
    if action in (HealableAction.FILL, HealableAction.SELECT_OPTION):
        if value is None:
            raise RepairParseError(f"{action.value} requires a value")
        args = (value,)
    return RepairInstruction(action=action, chain=chain, args=args)


def _from_source(source: str) -> list[RepairInstruction]:
    prepared = LINE_COMMENT.sub("", source)
    prepared = REGEX_LITERAL.sub(_regex_call, prepared)
    try:
        module = ast.parse(prepared.strip())
    except SyntaxError as exc:
        raise RepairParseError(f"Repair code is not a supported Playwright statement: {exc.msg}") from exc

    instructions = []
    for statement in module.body:
        if not isinstance(statement, ast.Expr):
            raise RepairParseError("Repair code may only contain Playwright call statements")
        instructions.append(_from_expression(statement.value))
    if not instructions:
        raise RepairParseError("Repair code contains no statements")
    return instructions


def _regex_call(match: re.Match[str]) -> str:
    if match.group("string") is not None:
        return match.group("string")
    pattern = json.dumps(match.group("pattern"))
    flags = json.dumps(match.group("flags"))
    return f"{match.group('space')}{REGEX_MARKER}({pattern}, {flags})"


def _from_expression(node: ast.expr) -> RepairInstruction:
    calls: list[ChainCall] = []
    while True:
        if isinstance(node, ast.Await):
            node = node.value
        elif isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute):
            args, kwargs = _arguments(node)
            calls.append(ChainCall(snake_name(node.func.attr), args, kwargs))
            node = node.func.value
        elif isinstance(node, ast.Attribute):
            calls.append(ChainCall(snake_name(node.attr)))
            node = node.value
        elif isinstance(node, ast.Name) and node.id == "page":
            break
        else:
            raise RepairParseError("Repair code must be a call chain rooted at `page`")
    calls.reverse()

    if not calls:
        raise RepairParseError("Repair code does not call an action")
    final = calls.pop()
    action = _action(final.method)
    for call in calls:
        if call.method not in CHAIN_METHODS:
            raise RepairParseError(f"Unsupported locator method: {call.method}")
        if call.method in PROPERTY_METHODS:
            call.args, call.kwargs = (), {}
    if action is HealableAction.GOTO and calls:
        raise RepairParseError("goto must be called on the page")
    return RepairInstruction(action=action, chain=calls, args=final.args, kwargs=final.kwargs)


def _action(name: str) -> HealableAction:
    try:
        return HealableAction(name)
    except ValueError as exc:
        raise RepairParseError(f"Unsupported action: {name or '<missing>'}") from exc


def _arguments(node: ast.Call) -> tuple[tuple[Any, ...], dict[str, Any]]:
    args = [_literal(arg) for arg in node.args]
    kwargs: dict[str, Any] = {}
    for keyword in node.keywords:
        if keyword.arg is None:
            raise RepairParseError("Keyword unpacking is not supported in repair code")
        kwargs[snake_name(keyword.arg)] = _literal(keyword.value)
    # A trailing JavaScript options object becomes keyword arguments.
    if args and isinstance(args[-1], dict):
        options = args.pop()
        for key, value in options.items():
            kwargs[snake_name(str(key))] = value
    return tuple(args), kwargs


def _literal(node: ast.expr) -> Any:
    if isinstance(node, ast.Constant) and (node.value is None or isinstance(node.value, (str, int, float))):
        return node.value
    if isinstance(node, ast.Name) and node.id in JS_CONSTANTS:
        return JS_CONSTANTS[node.id]
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.USub):
        value = _literal(node.operand)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return -value
    if isinstance(node, (ast.List, ast.Tuple)):
        return [_literal(item) for item in node.elts]
    if isinstance(node, ast.Dict):
        result = {}
        for key, value in zip(node.keys, node.values):
            if isinstance(key, ast.Name):
                result[key.id] = _literal(value)
            elif isinstance(key, ast.Constant) and isinstance(key.value, str):
                result[key.value] = _literal(value)
            else:
                raise RepairParseError("Object keys must be names or strings")
        return result
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == REGEX_MARKER
        and len(node.args) == 2
    ):
        return RegexLiteral(_literal(node.args[0]), _literal(node.args[1]))
    raise RepairParseError(f"Unsupported argument in repair code: {ast.dump(node)}")


def _runtime_value(value: Any) -> Any:
    if isinstance(value, RegexLiteral):
        return value.compile()
    if isinstance(value, list):
        return [_runtime_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _runtime_value(item) for key, item in value.items()}
    return value


def _render_literal(value: Any) -> str:
    if isinstance(value, RegexLiteral):
        flags = ", re.IGNORECASE" if "i" in value.flags else ""
        return f"re.compile({json.dumps(value.pattern)}{flags})"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, list):
        return "[" + ", ".join(_render_literal(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{json.dumps(str(key))}: {_render_literal(item)}" for key, item in value.items()) + "}"
    return repr(value)


def render_arguments(args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    rendered = [_render_literal(arg) for arg in args]
    rendered.extend(f"{key}={_render_literal(value)}" for key, value in kwargs.items())
    return ", ".join(rendered)


def render_python(instructions: list[RepairInstruction], awaited: bool = True) -> str:
    return "\n".join(instruction.to_python(awaited=awaited) for instruction in instructions)


async def execute(page, instructions: list[RepairInstruction]) -> None:
    """Replays parsed instructions against the live page, in order."""

    for instruction in instructions:
        target = page
        for call in instruction.chain:
            target = chain_step(
                target,
                call.method,
                tuple(_runtime_value(arg) for arg in call.args),
                _runtime_value(call.kwargs),
            )
        await invoke(
            target,
            instruction.action,
            tuple(_runtime_value(arg) for arg in instruction.args),
            _runtime_value(instruction.kwargs),
        )
