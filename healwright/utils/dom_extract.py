from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Iterable

from playwright.async_api import Error as PlaywrightError

from healwright.core.metadata import ElementRecord, FormField, PageSnapshot

logger = logging.getLogger(__name__)

COLLECT_ELEMENTS_SCRIPT = r"""
() => {
  const elements = [];
  const formFields = [];

  const labelMap = new Map();
  for (const label of document.querySelectorAll("label")) {
    const text = (label.textContent || "").trim();
    let control = null;
    const forId = label.getAttribute("for");
    if (forId) control = document.getElementById(forId);
    if (!control) control = label.querySelector("input, textarea, select");
    if (text && control) labelMap.set(control, text);
  }

  const attributesOf = (node) => {
    const attributes = {};
    for (const attr of node.attributes) attributes[attr.name] = attr.value;
    return attributes;
  };

  const stableSelectors = (node) => {
    const selectors = [];
    const testId = node.getAttribute("data-testid");
    if (testId) selectors.push(`[data-testid="${testId}"]`);
    if (node.id) selectors.push(`#${node.id}`);
    const name = node.getAttribute("name");
    if (name) selectors.push(`[name="${name}"]`);
    const className = typeof node.className === "string" ? node.className.trim() : "";
    if (className) selectors.push(`.${className.split(/\s+/).join(".")}`);
    return selectors;
  };

  document.querySelectorAll("input").forEach((input, index) => {
    const selectors = stableSelectors(input);
    if (input.type) selectors.push(`input[type="${input.type}"]`);
    if (input.placeholder) selectors.push(`[placeholder="${input.placeholder}"]`);
    selectors.push(`input:nth-child(${index + 1})`);
    elements.push({
      type: "input",
      tagName: "input",
      index,
      attributes: attributesOf(input),
      text: input.value || input.placeholder || "",
      selectors,
    });
    formFields.push({
      label: labelMap.get(input) || "",
      name: input.name || "",
      id: input.id || "",
      placeholder: input.placeholder || "",
      type: input.type || "text",
    });
  });

  document.querySelectorAll("button").forEach((button, index) => {
    const text = (button.textContent || "").trim();
    const selectors = stableSelectors(button);
    if (button.type) selectors.push(`button[type="${button.type}"]`);
    if (text) selectors.push(`button:has-text("${text}")`);
    selectors.push(`button:nth-child(${index + 1})`);
    elements.push({
      type: "button",
      tagName: "button",
      index,
      attributes: attributesOf(button),
      text,
      selectors,
    });
  });

  document.querySelectorAll("a[href]").forEach((link, index) => {
    const text = (link.textContent || "").trim();
    const selectors = stableSelectors(link);
    selectors.push(`[href="${link.getAttribute("href")}"]`);
    if (text) selectors.push(`a:has-text("${text}")`);
    selectors.push(`a:nth-child(${index + 1})`);
    elements.push({
      type: "link",
      tagName: "a",
      index,
      attributes: attributesOf(link),
      text,
      selectors,
    });
  });

  document.querySelectorAll("select").forEach((select, index) => {
    const selectors = stableSelectors(select);
    selectors.push(`select:nth-child(${index + 1})`);
    elements.push({
      type: "select",
      tagName: "select",
      index,
      attributes: attributesOf(select),
      text: "",
      selectors,
    });
  });

  return { elements, formFields };
}
"""


def _now() -> str:
    return datetime.now(UTC).isoformat()


async def extract_page_snapshot(page) -> PageSnapshot:
    """Collects interactive elements from the live page.

    DOM analysis is telemetry for the healer, so a closed page or a failed
    evaluation produces an empty snapshot carrying ``error`` instead of raising.
    """

    if page is None or page.is_closed():
        return PageSnapshot(url="", timestamp=_now(), error="Page was closed before element extraction")

    url = page.url
    try:
        payload = await page.evaluate(COLLECT_ELEMENTS_SCRIPT) or {}
    except PlaywrightError as exc:
        logger.warning("Element extraction failed on %s: %s", url, exc)
        return PageSnapshot(url=url, timestamp=_now(), error=f"DOM analysis failed: {exc}")

    elements = [_element_from_payload(item) for item in payload.get("elements", [])]
    form_fields = [
        FormField(
            label=item.get("label", ""),
            name=item.get("name", ""),
            id=item.get("id", ""),
            placeholder=item.get("placeholder", ""),
            type=item.get("type", "text"),
        )
        for item in payload.get("formFields", [])
    ]

    page_title = "Unknown"
    try:
        page_title = await page.title()
    except PlaywrightError as exc:
        logger.warning("Could not read page title: %s", exc)

    logger.info("Found %d interactive elements on %s", len(elements), url)
    return PageSnapshot(
        url=url,
        timestamp=_now(),
        elements=elements,
        form_fields=form_fields,
        page_title=page_title,
    )


def _element_from_payload(item: dict[str, Any]) -> ElementRecord:
    return ElementRecord(
        type=item.get("type", ""),
        tag_name=item.get("tagName", ""),
        attributes=item.get("attributes", {}),
        text=item.get("text", ""),
        selectors=list(item.get("selectors", [])),
        index=item.get("index", 0),
    )


def remove_duplicate_elements(elements: Iterable[ElementRecord]) -> list[ElementRecord]:
    seen: set[str] = set()
    unique: list[ElementRecord] = []
    for element in elements:
        key = "|".join(sorted(element.selectors)) + f"|{element.type}|{element.text}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(element)
    return unique


def summarize_elements(elements: Iterable[ElementRecord], limit: int = 50) -> list[dict[str, Any]]:
    summary: list[dict[str, Any]] = []
    for element in elements:
        if len(summary) >= limit:
            break
        summary.append(element.to_payload())
    return summary
