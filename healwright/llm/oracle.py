from __future__ import annotations

import asyncio
import logging

from healwright.core.metadata import PageSnapshot
from healwright.llm.client import TextCompletionClient
from healwright.llm.parser import strip_code_fences
from healwright.llm.prompts import SYSTEM_PROMPT, build_user_prompt
from healwright.utils.dom_extract import summarize_elements

logger = logging.getLogger(__name__)


class RepairOracleClient:
    """Asks a completion model for corrected automation code.

    Any failure, including transport errors, resolves to ``None`` so the
    caller can fall back to the original error.
    """

    def __init__(self, completion_client: TextCompletionClient | None, max_elements: int = 50) -> None:
        self.completion_client = completion_client
        self.max_elements = max_elements

    @property
    def provider_name(self) -> str:
        return getattr(self.completion_client, "provider_name", "unknown")

    async def heal(self, snapshot: PageSnapshot, error: BaseException | str, failed_step_code: str) -> str | None:
        if self.completion_client is None:
            logger.warning("No repair oracle configured; cannot heal %s", failed_step_code)
            return None

        user_prompt = build_user_prompt(
            failed_step_code,
            _error_message(error),
            snapshot.url,
            summarize_elements(snapshot.elements, self.max_elements),
        )
        logger.info("Asking %s for a repair of %s", self.provider_name, failed_step_code)
        try:
            response = await asyncio.to_thread(self.completion_client.complete, SYSTEM_PROMPT, user_prompt)
        except Exception as exc:  # noqa: BLE001 - oracle failure means "no fix available".
            logger.error("Self-healing oracle call failed: %s", exc)
            return None

        code = strip_code_fences(response)
        if not code:
            logger.warning("Repair oracle returned empty code")
            return None
        logger.info("Repair oracle suggested: %s", code)
        return code


def _error_message(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        return getattr(error, "message", None) or str(error)
    return str(error)
