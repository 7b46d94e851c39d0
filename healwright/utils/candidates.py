from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from healwright.core.heal_store import HealDescriptor

GENERIC_WORDS = {
    "the",
    "a",
    "an",
    "field",
    "input",
    "box",
    "textbox",
    "text",
    "button",
    "btn",
    "link",
    "dropdown",
    "select",
    "menu",
    "area",
    "option",
}


class CandidateStrategy(str, Enum):
    LABEL = "label"
    ROLE = "role"
    CSS = "css"
    TEXT = "text"
    GENERIC = "generic"


STRATEGY_PRIORITY = {
    CandidateStrategy.LABEL: 110,
    CandidateStrategy.ROLE: 100,
    CandidateStrategy.CSS: 90,
    CandidateStrategy.GENERIC: 70,
    CandidateStrategy.TEXT: 40,
}


@dataclass(slots=True, frozen=True)
class SelectorCandidate:
    strategy: CandidateStrategy
    expression: str
    priority: int
    role: str | None = None

    @classmethod
    def of(cls, strategy: CandidateStrategy, expression: str, role: str | None = None) -> "SelectorCandidate":
        return cls(strategy=strategy, expression=expression, priority=STRATEGY_PRIORITY[strategy], role=role)

    def to_locator(self, page):
        """Builds the live locator; label, role and text expressions are regex sources."""

        if self.strategy is CandidateStrategy.LABEL:
            return page.get_by_label(re.compile(self.expression, re.IGNORECASE))
        if self.strategy is CandidateStrategy.ROLE:
            return page.get_by_role(self.role, name=re.compile(self.expression, re.IGNORECASE))
        if self.strategy is CandidateStrategy.TEXT:
            return page.get_by_text(re.compile(self.expression, re.IGNORECASE))
        return page.locator(self.expression)

    def to_descriptor(self) -> HealDescriptor:
        if self.strategy is CandidateStrategy.LABEL:
            return HealDescriptor(type="label", name=self.expression)
        if self.strategy is CandidateStrategy.ROLE:
            return HealDescriptor(type="role", role=self.role, name=self.expression)
        if self.strategy is CandidateStrategy.TEXT:
            return HealDescriptor(type="selector", selector=f"text=/{self.expression}/i")
        return HealDescriptor(type="selector", selector=self.expression)

    def describe(self) -> str:
        if self.strategy is CandidateStrategy.ROLE:
            return f"role={self.role}[name=/{self.expression}/i]"
        if self.strategy in (CandidateStrategy.LABEL, CandidateStrategy.TEXT):
            return f"{self.strategy.value}=/{self.expression}/i"
        return self.expression


def generate_label_patterns(target: str) -> list[str]:
    """Regex sources for accessible-name lookups, most specific first."""

    normalized = " ".join(str(target or "").split())
    if not normalized:
        return []
    words = normalized.split(" ")
    core_words = [word for word in words if word.lower() not in GENERIC_WORDS] or words
    core = " ".join(core_words)

    patterns: list[str] = []
    for source in (
        re.escape(normalized),
        re.escape(core),
        r"\s*".join(re.escape(word) for word in core_words),
    ):
        if source and source not in patterns:
            patterns.append(source)
    return patterns


def generate_semantic_candidates(kind: str, target: str) -> list[SelectorCandidate]:
    candidates: list[SelectorCandidate] = []
    for pattern in generate_label_patterns(target):
        if kind == "click":
            candidates.append(SelectorCandidate.of(CandidateStrategy.ROLE, pattern, role="button"))
            candidates.append(SelectorCandidate.of(CandidateStrategy.ROLE, pattern, role="link"))
        elif kind == "fill":
            candidates.append(SelectorCandidate.of(CandidateStrategy.LABEL, pattern))
            candidates.append(SelectorCandidate.of(CandidateStrategy.ROLE, pattern, role="textbox"))
        elif kind == "select":
            candidates.append(SelectorCandidate.of(CandidateStrategy.LABEL, pattern))
            candidates.append(SelectorCandidate.of(CandidateStrategy.ROLE, pattern, role="combobox"))
    return candidates


def _name_variants(lower: str) -> list[str]:
    words = re.findall(r"[a-z0-9]+", lower)
    if not words:
        return []
    variants = ["-".join(words), "_".join(words), "".join(words)]
    if len(words) > 1:
        variants.append(words[0] + "".join(word.capitalize() for word in words[1:]))
    unique: list[str] = []
    for variant in variants:
        if variant not in unique:
            unique.append(variant)
    return unique


def _keyword_selectors(lower: str) -> list[SelectorCandidate]:
    css = CandidateStrategy.CSS
    generic = CandidateStrategy.GENERIC
    if "username" in lower or "email" in lower:
        selectors = [
            (css, "#username"),
            (css, '[name="username"]'),
            (css, '[name="email"]'),
            (css, 'input[type="email"]'),
            (css, 'input[placeholder*="username" i]'),
            (css, 'input[placeholder*="email" i]'),
        ]
    elif "password" in lower:
        selectors = [
            (css, "#password"),
            (css, '[name="password"]'),
            (css, 'input[type="password"]'),
            (css, 'input[placeholder*="password" i]'),
        ]
    elif "submit" in lower or "login" in lower or "sign in" in lower:
        selectors = [
            (css, 'button[type="submit"]'),
            (css, 'input[type="submit"]'),
            (css, 'button:has-text("Login")'),
            (css, 'button:has-text("Sign In")'),
            (css, 'button:has-text("Submit")'),
        ]
    elif "button" in lower:
        selectors = [
            (css, f'button:has-text("{lower}")'),
            (css, f'[role="button"]:has-text("{lower}")'),
            (generic, "button"),
        ]
    elif "link" in lower:
        selectors = [
            (css, f'a:has-text("{lower}")'),
            (generic, "a"),
        ]
    else:
        token = "-".join(re.findall(r"[a-z0-9]+", lower)) or lower
        selectors = [
            (css, f"#{token}"),
            (css, f'[name="{lower}"]'),
            (css, f'[data-testid="{lower}"]'),
            (css, f'button:has-text("{lower}")'),
            (css, f'a:has-text("{lower}")'),
            (generic, "input:nth-child(1)"),
        ]
    return [SelectorCandidate.of(strategy, expression) for strategy, expression in selectors]


def generate_heuristic_candidates(target: str) -> list[SelectorCandidate]:
    normalized = " ".join(str(target or "").split())
    lower = normalized.lower()
    if not normalized:
        return []
    escaped = re.escape(normalized)
    quoted = normalized.replace('"', '\\"')

    ordered: list[SelectorCandidate] = [
        SelectorCandidate.of(CandidateStrategy.LABEL, escaped),
        SelectorCandidate.of(CandidateStrategy.ROLE, escaped, role="textbox"),
        SelectorCandidate.of(CandidateStrategy.ROLE, escaped, role="button"),
    ]
    for variant in _name_variants(lower):
        ordered.append(SelectorCandidate.of(CandidateStrategy.CSS, f'[name="{variant}"]'))
        ordered.append(SelectorCandidate.of(CandidateStrategy.CSS, f"#{variant}"))
        ordered.append(SelectorCandidate.of(CandidateStrategy.CSS, f'[data-testid="{variant}"]'))
        ordered.append(SelectorCandidate.of(CandidateStrategy.CSS, f'input[id*="{variant}"]'))
    ordered.append(SelectorCandidate.of(CandidateStrategy.CSS, f'[aria-label*="{quoted}" i]'))
    ordered.extend(_keyword_selectors(lower))
    ordered.append(SelectorCandidate.of(CandidateStrategy.CSS, f'[placeholder*="{quoted}" i]'))
    ordered.append(SelectorCandidate.of(CandidateStrategy.TEXT, escaped))

    unique: list[SelectorCandidate] = []
    seen: set[tuple[str, str, str | None]] = set()
    for candidate in ordered:
        key = (candidate.strategy.value, candidate.expression, candidate.role)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def generate_candidates(kind: str, target: str) -> list[SelectorCandidate]:
    return generate_semantic_candidates(kind, target) + generate_heuristic_candidates(target)
