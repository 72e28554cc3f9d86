"""Answer checking and card level updates."""
from dataclasses import replace
from typing import List

from conjbot.config import MAX_LEVEL, MISTAKE_QUEUE_SIZE
from conjbot.models.training_models import Card, CardStats, GradeResult, Phase
from conjbot.services.conjugation import strip_diacritics

# Consecutive correct answers needed to climb one level
PROMOTION_STREAK = 2


def normalize_answer(text: str, ignore_accents: bool) -> str:
    text = text.lower()
    if ignore_accents:
        return strip_diacritics(text)
    return text.strip()


def is_correct(user_input: str, expected: str, ignore_accents: bool) -> bool:
    return normalize_answer(user_input, ignore_accents) == normalize_answer(expected, ignore_accents)


def apply_grade(stats: CardStats, ok: bool) -> CardStats:
    """Statistics after one more answer; the input is left untouched."""
    if ok:
        updated = replace(
            stats,
            seen=stats.seen + 1,
            correct=stats.correct + 1,
            streak_correct=stats.streak_correct + 1,
            streak_wrong=0,
        )
        if updated.level < MAX_LEVEL and updated.streak_correct >= PROMOTION_STREAK:
            updated.level += 1
            updated.streak_correct = 0
        return updated

    return replace(
        stats,
        seen=stats.seen + 1,
        wrong=stats.wrong + 1,
        streak_wrong=stats.streak_wrong + 1,
        streak_correct=0,
        level=max(0, stats.level - 1),
    )


def grade(card: Card, user_input: str, stats: CardStats, ignore_accents: bool) -> GradeResult:
    """Check an answer against the card and compute the new statistics."""
    ok = is_correct(user_input, card.answer, ignore_accents)
    return GradeResult(ok=ok, stats=apply_grade(stats, ok))


def update_mistakes(
    card_id: str,
    ok: bool,
    phase: Phase,
    mistake_queue: List[str],
    wrong_list: List[str],
) -> None:
    """Update the mistake queue and the wrong list in place after grading."""
    if ok:
        if card_id in mistake_queue:
            mistake_queue.remove(card_id)
        if phase is Phase.REVIEW and card_id in wrong_list:
            wrong_list.remove(card_id)
        return

    if card_id in mistake_queue:
        mistake_queue.remove(card_id)
    mistake_queue.append(card_id)
    del mistake_queue[:-MISTAKE_QUEUE_SIZE]
    if card_id not in wrong_list:
        wrong_list.append(card_id)
