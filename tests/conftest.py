from __future__ import annotations

import pytest

from healwright.config.schema import HealwrightSettings
from healwright.core.heal_store import HealStore
from tests.helpers import FakePage


@pytest.fixture()
def settings(tmp_path):
    return HealwrightSettings.model_validate(
        {
            "healing": {
                "store_path": str(tmp_path / ".self-heal" / "selectors.json"),
                "audit_log_path": str(tmp_path / "healed_steps.json"),
                "highlight_pause_ms": 0,
            },
            "oracle": {"provider": "openrouter", "api_key": "test-key"},
        }
    )


@pytest.fixture()
def heal_store(settings):
    store = HealStore(settings.healing.store_path)
    store.load()
    return store


@pytest.fixture()
def page():
    return FakePage()
