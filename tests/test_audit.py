from __future__ import annotations

import json
import logging

from healwright.core.metadata import HealedStepLogEntry
from healwright.logging.audit import HealedStepLogger
from healwright.logging.console import configure_logging


def _entry(step: str) -> HealedStepLogEntry:
    return HealedStepLogEntry(
        original_step=step,
        error="Timeout 3000ms exceeded",
        healed_code="await page.get_by_role('button', name='Submit').click()",
        timestamp="2024-01-01T00:00:00+00:00",
        url="https://app.test/checkout",
    )


def test_entries_are_appended_in_order(tmp_path):
    path = tmp_path / "logs" / "healed_steps.json"
    audit = HealedStepLogger(path)

    audit.write(_entry("await page.click('#a')"))
    audit.write(_entry("await page.click('#b')"))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert [item["originalStep"] for item in payload] == ["await page.click('#a')", "await page.click('#b')"]
    assert set(payload[0]) == {"originalStep", "error", "healedCode", "timestamp", "url"}


def test_corrupt_log_is_restarted(tmp_path):
    path = tmp_path / "healed_steps.json"
    path.write_text("[{broken", encoding="utf-8")
    audit = HealedStepLogger(path)

    assert audit.read() == []
    audit.write(_entry("await page.click('#a')"))
    assert len(audit.read()) == 1


def test_configure_logging_is_idempotent():
    logger = configure_logging(logging.DEBUG)
    configure_logging(logging.DEBUG)

    marked = [handler for handler in logger.handlers if getattr(handler, "_healwright", False)]
    assert len(marked) == 1
    assert logger.level == logging.DEBUG
