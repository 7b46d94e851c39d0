from __future__ import annotations

import re

CODE_FENCE = re.compile(r"```[a-zA-Z]*")


def strip_code_fences(response: str | None) -> str:
    if not response:
        return ""
    return CODE_FENCE.sub("", response).strip()
