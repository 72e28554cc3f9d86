"""Selection of the next card to ask."""
import logging
import random
from typing import Optional, Sequence

from conjbot.config import MAX_LEVEL
from conjbot.models.training_models import Candidate, CardStats, Phase

logger = logging.getLogger(__name__)


class EmptyDeckError(ValueError):
    """Raised when cards are requested from an empty deck."""

    def __init__(self, message: str = "cannot start: empty deck"):
        super().__init__(message)


def card_weight(stats: CardStats) -> int:
    """Lottery weight: low levels and recent mistakes are drawn more often."""
    return 1 + (MAX_LEVEL - stats.level) + 2 * stats.streak_wrong


def weighted_choice(candidates: Sequence[Candidate], rng: Optional[random.Random] = None) -> Candidate:
    """Draw one candidate with probability proportional to its weight."""
    if not candidates:
        raise EmptyDeckError()
    rng = rng or random
    weights = [card_weight(candidate.stats) for candidate in candidates]
    remainder = rng.random() * sum(weights)
    for candidate, weight in zip(candidates, weights):
        remainder -= weight
        if remainder <= 0:
            return candidate
    return candidates[-1]


def _find(candidates: Sequence[Candidate], card_id: str) -> Optional[Candidate]:
    return next((candidate for candidate in candidates if candidate.id == card_id), None)


def select_card(
    candidates: Sequence[Candidate],
    phase: Phase,
    mistake_queue: Sequence[str],
    wrong_list: Sequence[str],
    rng: Optional[random.Random] = None,
) -> Candidate:
    """Pick the next card.

    In practice the oldest entry of the mistake queue is repeated first, in
    review the oldest entry of the wrong list. When that card is not part of
    the deck anymore (verb disabled, stage changed) the weighted lottery
    decides.
    """
    if not candidates:
        raise EmptyDeckError()

    forced_id = None
    if phase is Phase.PRACTICE and mistake_queue:
        forced_id = mistake_queue[0]
    elif phase is Phase.REVIEW and wrong_list:
        forced_id = wrong_list[0]

    if forced_id is not None:
        forced = _find(candidates, forced_id)
        if forced is not None:
            return forced
        logger.debug(f"Card {forced_id} is not in the deck, falling back to the lottery")

    return weighted_choice(candidates, rng)
