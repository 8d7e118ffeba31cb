"""Retry loop that broadens a search until its results are good enough.

The controller moves through explicit states::

    SCORING -> ACCEPT            quality reached the threshold
    SCORING -> RETRY -> SCORING  below threshold, attempts left
    SCORING -> GIVE_UP           below threshold, attempts exhausted

On GIVE_UP the best attempt seen so far is returned.
"""

import enum
import logging
import typing as typ
from dataclasses import dataclass, field

import numpy as np

from retrieval.models import RankedCandidate, SearchIntent

logger = logging.getLogger(__name__)

TOP_K = 10
BROAD_PENALTY = 0.5


class ReflectionState(enum.Enum):
    SCORING = "scoring"
    ACCEPT = "accept"
    RETRY = "retry"
    GIVE_UP = "give_up"


@dataclass(frozen=True)
class Attempt:
    number: int
    intent: SearchIntent
    candidates: list[RankedCandidate]
    quality: float


@dataclass
class ReflectionOutcome:
    state: ReflectionState
    best: Attempt
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def candidates(self) -> list[RankedCandidate]:
        return self.best.candidates


def quality_score(candidates: typ.Sequence[RankedCandidate], target_count: int) -> float:
    """Score a result set on a 0-10 scale.

    Mean score of the top results, scaled by how many of `target_count`
    results were found, halved when every result is only a broad match.
    """
    if not candidates or target_count < 1:
        return 0.0
    scores = np.array([c.score for c in candidates[:TOP_K]], dtype=np.float64)
    coverage = min(1.0, len(candidates) / target_count)
    quality = float(scores.mean()) * coverage
    if all(c.match_type == "broad" for c in candidates):
        quality *= BROAD_PENALTY
    return round(float(np.clip(quality, 0.0, 10.0)), 2)


class ReflectionController:
    def __init__(self, threshold: float = 5.0, max_attempts: int = 3):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.threshold = threshold
        self.max_attempts = max_attempts

    def decide(self, quality: float, attempt: int) -> ReflectionState:
        if quality >= self.threshold:
            return ReflectionState.ACCEPT
        if attempt < self.max_attempts:
            return ReflectionState.RETRY
        return ReflectionState.GIVE_UP

    def run(
        self,
        intent: SearchIntent,
        search: typ.Callable[[SearchIntent], list[RankedCandidate]],
        broaden: typ.Callable[[SearchIntent, int], SearchIntent],
        target_count: int,
    ) -> ReflectionOutcome:
        """Search with `intent`, broadening it until the quality threshold is met."""
        attempts: list[Attempt] = []
        state = ReflectionState.SCORING
        number = 1
        while True:
            if state is ReflectionState.SCORING:
                candidates = search(intent)
                quality = quality_score(candidates, target_count)
                attempts.append(Attempt(number, intent, candidates, quality))
                state = self.decide(quality, number)
                logger.info(
                    "Attempt %d/%d: %d results, quality %.2f -> %s",
                    number, self.max_attempts, len(candidates), quality, state.value,
                )
            elif state is ReflectionState.RETRY:
                number += 1
                intent = broaden(intent, number - 1)
                state = ReflectionState.SCORING
            else:
                break

        if state is ReflectionState.ACCEPT:
            best = attempts[-1]
        else:
            # max() keeps the earliest attempt on ties
            best = max(attempts, key=lambda a: a.quality)
            logger.warning(
                "Giving up after %d attempts, best quality %.2f (attempt %d)",
                len(attempts), best.quality, best.number,
            )
        return ReflectionOutcome(state=state, best=best, attempts=attempts)
