from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True)
class ElementRecord:
    type: str
    tag_name: str
    attributes: dict[str, str]
    text: str
    selectors: list[str]
    index: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "tagName": self.tag_name,
            "attributes": self.attributes,
            "text": self.text,
            "selectors": self.selectors,
        }


@dataclass(slots=True)
class FormField:
    label: str
    name: str
    id: str
    placeholder: str
    type: str


@dataclass(slots=True)
class PageSnapshot:
    url: str
    timestamp: str
    elements: list[ElementRecord] = field(default_factory=list)
    form_fields: list[FormField] = field(default_factory=list)
    page_title: str = "Unknown"
    error: str | None = None


@dataclass(slots=True)
class StepAnalysis:
    url: str
    elements: list[ElementRecord]
    step: str
    step_index: int


@dataclass(slots=True)
class JourneyAnalysis:
    url: str
    timestamp: str
    elements: list[ElementRecord] = field(default_factory=list)
    page_analysis: list[StepAnalysis] = field(default_factory=list)
    error: str | None = None

    @property
    def total_pages(self) -> int:
        return len(self.page_analysis)

    @property
    def total_elements(self) -> int:
        return len(self.elements)


@dataclass(slots=True)
class NavigationResult:
    url: str
    wait_until: str | None
    attempt: int
    degraded: bool = False


@dataclass(slots=True)
class HealedStepLogEntry:
    original_step: str
    error: str
    healed_code: str
    timestamp: str
    url: str

    def to_payload(self) -> dict[str, str]:
        payload = asdict(self)
        return {
            "originalStep": payload["original_step"],
            "error": payload["error"],
            "healedCode": payload["healed_code"],
            "timestamp": payload["timestamp"],
            "url": payload["url"],
        }
