from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from healwright.core.metadata import HealedStepLogEntry

logger = logging.getLogger(__name__)


class HealedStepLogger:
    """Append-only JSON array of runtime heals; diagnostic only."""

    def __init__(self, path: str | Path = "healed_steps.json") -> None:
        self.path = Path(path)

    def write(self, entry: HealedStepLogEntry) -> None:
        entries = self.read()
        entries.append(entry.to_payload())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to save healed step: %s", exc)
            return
        logger.info("Healed step saved to %s", self.path)

    def read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            payload = json.loads(raw) if raw.strip() else []
        except (OSError, ValueError) as exc:
            logger.warning("Starting a fresh healed-step log; %s is unreadable: %s", self.path, exc)
            return []
        return payload if isinstance(payload, list) else []
