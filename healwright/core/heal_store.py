from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


class HealDescriptor(BaseModel):
    """Replayable locator recorded after a successful heal."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["label", "role", "selector"]
    role: str | None = None
    name: str | None = None
    selector: str | None = None

    def to_locator(self, page):
        if self.type == "label" and self.name:
            return page.get_by_label(re.compile(self.name, re.IGNORECASE)).first
        if self.type == "role" and self.role and self.name:
            return page.get_by_role(self.role, name=re.compile(self.name, re.IGNORECASE)).first
        if self.type == "selector" and self.selector:
            return page.locator(self.selector).first
        return None


class HealStore:
    """In-memory map of healed selectors mirrored to a JSON file.

    The map is authoritative for this process. ``save`` re-reads the file and
    overlays the in-memory entries, so concurrent sessions converge on
    last-writer-wins per key without any locking.
    """

    def __init__(self, path: str | Path, enabled: bool = True, persist: bool = True) -> None:
        self.path = Path(path)
        self.enabled = enabled
        self.persist = persist
        self._entries: dict[str, dict[str, Any]] = {}
        self._dirty: set[str] = set()

    @staticmethod
    def make_key(kind: str, target: str) -> str:
        return f"{kind}|{str(target or '').strip().lower()}"

    def load(self) -> None:
        self._entries = self._read_disk()
        self._dirty.clear()

    def _read_disk(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
            payload = json.loads(raw or "{}")
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load self-heal store %s: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring self-heal store %s: expected a JSON object", self.path)
            return {}
        return {key: value for key, value in payload.items() if isinstance(value, dict)}

    def get_persisted_descriptor(self, kind: str, target: str) -> HealDescriptor | None:
        if not self.enabled:
            return None
        record = self._entries.get(self.make_key(kind, target))
        if record is None:
            return None
        try:
            return HealDescriptor.model_validate(record)
        except ValidationError:
            logger.debug("Unreadable heal descriptor for %s|%s", kind, target)
            return None

    def get_persisted_selector(self, page, kind: str, target: str):
        descriptor = self.get_persisted_descriptor(kind, target)
        if descriptor is None:
            return None
        try:
            return descriptor.to_locator(page)
        except re.error as exc:
            logger.debug("Unusable heal descriptor for %s|%s: %s", kind, target, exc)
            return None

    def persist_healed_selector(self, kind: str, target: str, descriptor: HealDescriptor) -> None:
        if not self.persist:
            return
        key = self.make_key(kind, target)
        self._entries[key] = descriptor.model_dump(exclude_none=True)
        self._dirty.add(key)
        self.save()

    def save(self) -> None:
        if not self.persist:
            return
        merged = self._read_disk()
        for key in self._dirty:
            merged[key] = self._entries[key]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle, temp_name = tempfile.mkstemp(prefix=".selectors-", suffix=".json", dir=self.path.parent)
            with os.fdopen(handle, "w", encoding="utf-8") as temp_file:
                json.dump(merged, temp_file, indent=2, sort_keys=True)
            os.replace(temp_name, self.path)
        except OSError as exc:
            logger.warning("Failed to save self-heal store %s: %s", self.path, exc)
            return
        for key, value in merged.items():
            self._entries.setdefault(key, value)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
