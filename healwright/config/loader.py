from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from healwright.config.schema import HealwrightSettings

PROVIDER_KEY_VARIABLES = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class ConfigLoader:
    """Loads and validates healwright settings from JSON or the environment."""

    @staticmethod
    def load(path: str | Path) -> HealwrightSettings:
        config_path = Path(path)
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return HealwrightSettings.model_validate(payload)

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> HealwrightSettings:
        env = os.environ if environ is None else environ
        provider = env.get("LLM_PROVIDER", "openrouter").lower()
        payload: dict[str, Any] = {
            "browser": {
                "headless": env.get("HEADLESS", "true").lower() != "false",
                "browsers_path": env.get("PLAYWRIGHT_BROWSERS_PATH") or None,
            },
            "navigation": {},
            "healing": {
                "enabled": _flag(env, "HEALING_ENABLED"),
                "persist": _flag(env, "HEALING_PERSIST"),
            },
            "oracle": {
                "provider": provider,
                "api_key": env.get("LLM_API_KEY") or env.get(PROVIDER_KEY_VARIABLES.get(provider, ""), ""),
                "model": env.get("LLM_MODEL") or None,
                "base_url": env.get("LLM_BASE_URL") or None,
            },
        }
        if "PLAYWRIGHT_ANALYZER_TIMEOUT_MS" in env:
            payload["navigation"]["timeout_ms"] = int(env["PLAYWRIGHT_ANALYZER_TIMEOUT_MS"])
        if "PLAYWRIGHT_NAV_WAIT_UNTIL" in env:
            payload["navigation"]["wait_until"] = env["PLAYWRIGHT_NAV_WAIT_UNTIL"]
        if "PLAYWRIGHT_ANALYZER_RETRIES" in env:
            payload["navigation"]["retries"] = int(env["PLAYWRIGHT_ANALYZER_RETRIES"])
        if env.get("HEALING_STORE_PATH"):
            payload["healing"]["store_path"] = env["HEALING_STORE_PATH"]
        if env.get("HEALED_STEPS_PATH"):
            payload["healing"]["audit_log_path"] = env["HEALED_STEPS_PATH"]
        return HealwrightSettings.model_validate(payload)


def _flag(env: Mapping[str, str], name: str) -> bool:
    """Unset counts as enabled; only the literal "true" enables an explicit value."""

    value = env.get(name)
    return not value or value.lower() == "true"
