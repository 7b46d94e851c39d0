from __future__ import annotations

import json
from typing import Any
from urllib import error, request

USER_AGENT = "healwright/0.1.0"


def post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float = 30) -> dict[str, Any]:
    encoded = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=encoded, headers=headers, method="POST")
    try:
        with request.urlopen(req, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise RuntimeError(f"LLM request failed with status {exc.code}: {detail}") from exc
    except error.URLError as exc:
        raise RuntimeError(f"LLM request could not be completed: {exc.reason}") from exc
    return json.loads(raw)


def fetch_text(url: str, timeout: float = 15) -> str:
    """Fetches a page body without a browser; used for degraded navigation."""

    req = request.Request(url, headers={"User-Agent": USER_AGENT}, method="GET")
    with request.urlopen(req, timeout=timeout) as response:
        charset = response.headers.get_content_charset() or "utf-8"
        return response.read().decode(charset, errors="replace")
