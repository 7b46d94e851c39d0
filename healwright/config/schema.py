from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

WAIT_STATES = {"load", "domcontentloaded", "networkidle", "commit"}
ORACLE_PROVIDERS = {"openai", "openrouter", "anthropic", "gemini"}


class BrowserConfig(BaseModel):
    headless: bool = True
    browsers_path: str | None = None
    viewport_width: int = 1280
    viewport_height: int = 720


class NavigationConfig(BaseModel):
    timeout_ms: int = Field(default=15000, ge=0)
    wait_until: str = "load"
    retries: int = Field(default=1, ge=0)
    snapshot_timeout_ms: int = Field(default=15000, ge=0)

    @field_validator("wait_until")
    @classmethod
    def validate_wait_until(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in WAIT_STATES:
            raise ValueError(f"Unsupported wait strategy: {value}")
        return normalized


class HealingConfig(BaseModel):
    enabled: bool = True
    persist: bool = True
    store_path: str = ".self-heal/selectors.json"
    audit_log_path: str = "healed_steps.json"
    action_timeout_ms: int = Field(default=3000, ge=0)
    highlight: bool = True
    highlight_pause_ms: int = Field(default=500, ge=0)
    max_prompt_elements: int = Field(default=50, ge=0)
    max_journey_steps: int = Field(default=5, ge=0)
    patch_source: bool = True


class OracleConfig(BaseModel):
    provider: str = "openrouter"
    api_key: str = ""
    model: str | None = None
    base_url: str | None = None
    temperature: float = 0
    max_tokens: int = 512
    request_timeout_seconds: int = 30

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in ORACLE_PROVIDERS:
            raise ValueError(f"Unsupported LLM provider: {value}")
        return normalized


class HealwrightSettings(BaseModel):
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    healing: HealingConfig = Field(default_factory=HealingConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
