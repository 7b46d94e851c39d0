from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from playwright.async_api import Error as PlaywrightError

from healwright.utils.candidates import CandidateStrategy, SelectorCandidate

logger = logging.getLogger(__name__)

# How far extra matches can pull a candidate below its strategy base.
MATCH_PENALTY_SPREAD = {
    CandidateStrategy.LABEL: 100,
    CandidateStrategy.ROLE: 90,
    CandidateStrategy.CSS: 70,
    CandidateStrategy.GENERIC: 60,
    CandidateStrategy.TEXT: 30,
}

# Larger than the gap between any two strategy bases: a unique match always wins.
UNIQUE_MATCH_BONUS = 100


@dataclass(slots=True)
class ScoredCandidate:
    candidate: SelectorCandidate
    locator: Any
    match_count: int
    score: float


def score_candidate(candidate: SelectorCandidate, match_count: int) -> float:
    if match_count <= 0:
        return 0.0
    spread = MATCH_PENALTY_SPREAD[candidate.strategy]
    score = candidate.priority - min(match_count - 1, spread)
    if match_count == 1:
        score += UNIQUE_MATCH_BONUS
    return float(score)


async def score_candidates(page, candidates: Iterable[SelectorCandidate]) -> list[ScoredCandidate]:
    """Counts live matches per candidate and ranks the ones that match anything.

    Each candidate costs exactly one ``count()`` query. Invalid selectors and
    zero-match candidates are dropped; the sort is stable so equal scores keep
    generation order.
    """

    scored: list[ScoredCandidate] = []
    for candidate in candidates:
        try:
            locator = candidate.to_locator(page)
            match_count = await locator.count()
        except PlaywrightError as exc:
            logger.debug("Candidate %s is not queryable: %s", candidate.describe(), exc)
            continue
        score = score_candidate(candidate, match_count)
        if score > 0:
            scored.append(ScoredCandidate(candidate, locator, match_count, score))
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored
