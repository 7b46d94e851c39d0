from __future__ import annotations

from enum import Enum
from typing import Any


class HealableAction(str, Enum):
    """Actions the runtime proxy intercepts and the repair interpreter may replay."""

    CLICK = "click"
    FILL = "fill"
    CHECK = "check"
    SELECT_OPTION = "select_option"
    HOVER = "hover"
    GOTO = "goto"

    @property
    def targets_element(self) -> bool:
        return self is not HealableAction.GOTO


# Locator-returning methods; ``first`` and ``last`` are properties on a Playwright Locator.
CHAIN_METHODS = frozenset(
    {
        "locator",
        "get_by_role",
        "get_by_text",
        "get_by_placeholder",
        "get_by_label",
        "get_by_test_id",
        "get_by_alt_text",
        "get_by_title",
        "nth",
        "first",
        "last",
        "filter",
    }
)
PROPERTY_METHODS = frozenset({"first", "last"})

CAMEL_ALIASES = {
    "getByRole": "get_by_role",
    "getByText": "get_by_text",
    "getByPlaceholder": "get_by_placeholder",
    "getByLabel": "get_by_label",
    "getByTestId": "get_by_test_id",
    "getByAltText": "get_by_alt_text",
    "getByTitle": "get_by_title",
    "selectOption": "select_option",
}


def snake_name(name: str) -> str:
    if name in CAMEL_ALIASES:
        return CAMEL_ALIASES[name]
    converted = []
    for char in name:
        if char.isupper():
            converted.append("_" + char.lower())
        else:
            converted.append(char)
    return "".join(converted)


def chain_step(target, method: str, args: tuple[Any, ...] = (), kwargs: dict[str, Any] | None = None):
    if method not in CHAIN_METHODS:
        raise ValueError(f"Unsupported locator method: {method}")
    if method in PROPERTY_METHODS:
        return getattr(target, method)
    return getattr(target, method)(*args, **(kwargs or {}))


async def invoke(target, action: HealableAction, args: tuple[Any, ...] = (), kwargs: dict[str, Any] | None = None):
    """Single dispatch point for every healable action."""

    return await getattr(target, action.value)(*args, **(kwargs or {}))
