"""Models for training-related data structures."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from conjbot.config import MAX_LEVEL

PROGRESS_VERSION = 1


class Pronoun(Enum):
    """Subject pronouns a card can ask for."""
    JE = "je"
    TU = "tu"
    IL_ELLE = "il/elle"
    NOUS = "nous"
    VOUS = "vous"
    ILS_ELLES = "ils/elles"


ALL_PRONOUNS: Tuple[Pronoun, ...] = tuple(Pronoun)


def make_card_id(verb: str, pronoun: Pronoun) -> str:
    """Stable identity of a (verb, pronoun) card."""
    return f"{verb}::{pronoun.value}"


@dataclass(frozen=True)
class Card:
    """A conjugation prompt with its expected answer."""
    id: str
    verb: str
    pronoun: Pronoun
    answer: str


# Stored key -> attribute name; stored keys keep the camelCase of the
# original browser storage format.
_STATS_KEYS = {
    "level": "level",
    "seen": "seen",
    "correct": "correct",
    "wrong": "wrong",
    "streakCorrect": "streak_correct",
    "streakWrong": "streak_wrong",
}


@dataclass
class CardStats:
    """Mastery statistics of a single card."""
    level: int = 0
    seen: int = 0
    correct: int = 0
    wrong: int = 0
    streak_correct: int = 0
    streak_wrong: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to a JSON-ready mapping."""
        return {key: getattr(self, attr) for key, attr in _STATS_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Any) -> "CardStats":
        """Create statistics from stored data, raising ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"card statistics must be a mapping, got {type(data).__name__}")
        values = {}
        for key, attr in _STATS_KEYS.items():
            value = data.get(key, 0)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"invalid value for {key!r}: {value!r}")
            values[attr] = value
        stats = cls(**values)
        if stats.level > MAX_LEVEL:
            raise ValueError(f"level {stats.level} exceeds maximum {MAX_LEVEL}")
        if stats.seen != stats.correct + stats.wrong:
            raise ValueError("seen must equal correct + wrong")
        return stats


@dataclass
class ProgressStore:
    """Per-card statistics keyed by card id."""
    version: int = PROGRESS_VERSION
    cards: Dict[str, CardStats] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ProgressStore":
        return cls()

    def get(self, card_id: str) -> CardStats:
        """Statistics for a card; all zeros for a card never graded."""
        return self.cards.get(card_id) or CardStats()

    def clear(self) -> None:
        self.cards.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "cards": {card_id: stats.to_dict() for card_id, stats in self.cards.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ProgressStore":
        """Create a store from stored data, raising ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError("progress must be a mapping")
        version = data.get("version", PROGRESS_VERSION)
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValueError(f"invalid progress version: {version!r}")
        cards = data.get("cards", {})
        if not isinstance(cards, dict):
            raise ValueError("progress cards must be a mapping")
        return cls(
            version=version,
            cards={str(card_id): CardStats.from_dict(stats) for card_id, stats in cards.items()},
        )


@dataclass(frozen=True)
class Candidate:
    """A card merged with its current statistics."""
    card: Card
    stats: CardStats

    @property
    def id(self) -> str:
        return self.card.id

    @property
    def level(self) -> int:
        return self.stats.level

    @property
    def streak_wrong(self) -> int:
        return self.stats.streak_wrong


@dataclass(frozen=True)
class Stage:
    """Difficulty preset: active pronouns, hint visibility and accent strictness."""
    pronouns: Tuple[Pronoun, ...]
    hints: bool
    ignore_accents: bool
    label: str


class Phase(Enum):
    """Screens of a training session."""
    SETUP = "setup"
    PRACTICE = "practice"
    REVIEW = "review"
    RESULTS = "results"

    @property
    def is_active(self) -> bool:
        """Whether cards are being asked in this phase."""
        return self in (Phase.PRACTICE, Phase.REVIEW)


class SessionEvent(Enum):
    """Events that drive phase transitions."""
    START = "start"
    ANSWER_RECORDED = "answer_recorded"
    RESTART = "restart"
    BACK_TO_SETUP = "back_to_setup"


@dataclass
class SessionState:
    """Counters of the running session."""
    correct: int = 0
    total: int = 0
    target: int = 20

    def record(self, ok: bool) -> None:
        self.total += 1
        if ok:
            self.correct += 1

    @property
    def target_reached(self) -> bool:
        return self.total >= self.target

    @property
    def accuracy(self) -> int:
        """Share of correct answers in percent, rounded."""
        if not self.total:
            return 0
        return round(self.correct / self.total * 100)


@dataclass(frozen=True)
class Feedback:
    """Outcome of the latest submitted answer."""
    ok: bool
    expected: str
    user: str


@dataclass(frozen=True)
class GradeResult:
    """Correctness of an answer and the card statistics after grading."""
    ok: bool
    stats: CardStats


@dataclass(frozen=True)
class TrainerView:
    """Everything the presentation layer needs to render the trainer."""
    phase: Phase
    stage_index: int
    stage: Stage
    session: SessionState
    card: Optional[Card] = None
    instance: int = 0
    feedback: Optional[Feedback] = None
    deck_size: int = 0
    mastered: int = 0
    wrong_count: int = 0

    @property
    def mastery(self) -> int:
        """Share of mastered cards in the current deck in percent."""
        return round(self.mastered / max(1, self.deck_size) * 100)

    @property
    def awaiting_advance(self) -> bool:
        return self.feedback is not None
