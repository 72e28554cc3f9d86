"""Session controller: phases, answers and card flow of one learner."""
import logging
import random
from functools import partial
from typing import Iterable, List, Optional

from conjbot import monitoring
from conjbot.config import TrainerSettings, settings
from conjbot.models.training_models import (
    Candidate,
    Card,
    Feedback,
    Phase,
    ProgressStore,
    SessionEvent,
    SessionState,
    Stage,
    TrainerView,
)
from conjbot.models.verb_bank import STAGES, VERB_KEYS, default_verbs
from conjbot.services.catalog import build_deck, merge_candidates
from conjbot.services.grading import grade, update_mistakes
from conjbot.services.progress_service import ProgressService
from conjbot.services.selector import EmptyDeckError, select_card
from conjbot.services.timer import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValueError):
    """Raised for an event the current phase does not accept."""

    def __init__(self, phase: Phase, event: SessionEvent):
        super().__init__(f"event {event.value!r} is not allowed in phase {phase.value!r}")
        self.phase = phase
        self.event = event


def next_phase(phase: Phase, event: SessionEvent, session: SessionState, wrong_count: int) -> Phase:
    """Phase that follows `phase` when `event` happens."""
    if event is SessionEvent.BACK_TO_SETUP:
        return Phase.SETUP

    if event is SessionEvent.START and phase in (Phase.SETUP, Phase.RESULTS):
        return Phase.PRACTICE

    if event is SessionEvent.ANSWER_RECORDED:
        if phase is Phase.PRACTICE:
            if not session.target_reached:
                return Phase.PRACTICE
            return Phase.REVIEW if wrong_count else Phase.RESULTS
        if phase is Phase.REVIEW:
            return Phase.REVIEW if wrong_count else Phase.RESULTS

    if event is SessionEvent.RESTART and phase is Phase.RESULTS:
        return Phase.REVIEW if wrong_count else Phase.PRACTICE

    raise InvalidTransitionError(phase, event)


class TrainerSession:
    """Training state of one learner.

    Owns the progress store and writes it back through `progress` after every
    change. All methods are synchronous; the only deferred work is the
    auto-advance after a correct answer, run by `scheduler`.
    """

    def __init__(
        self,
        progress: Optional[ProgressService] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        trainer_settings: Optional[TrainerSettings] = None,
        enabled_verbs: Optional[Iterable[str]] = None,
        stage_index: int = 0,
    ):
        self.settings = trainer_settings or settings.trainer
        self.progress = progress
        self.scheduler = scheduler
        self.rng = rng or random.Random()

        self.store = (progress.load() if progress else None) or ProgressStore.empty()

        if enabled_verbs is None:
            enabled_verbs = default_verbs(self.settings.default_verb_count)
        self.enabled_verbs: List[str] = self._checked_verbs(enabled_verbs)
        self._check_stage_index(stage_index)
        self.stage_index = stage_index
        self.session_length = self.settings.default_session_length

        self.phase = Phase.SETUP
        self.session = SessionState(target=self.session_length)
        self.mistake_queue: List[str] = []
        self.wrong_list: List[str] = []
        self.current: Optional[Card] = None
        self.instance = 0
        self.feedback: Optional[Feedback] = None
        self._timer: Optional[ScheduledTask] = None
        self._deck: List[Card] = []
        self._rebuild_deck()

    # Deck

    @property
    def stage(self) -> Stage:
        return STAGES[self.stage_index]

    @property
    def deck(self) -> List[Card]:
        return list(self._deck)

    def candidates(self) -> List[Candidate]:
        return merge_candidates(self._deck, self.store)

    def _rebuild_deck(self) -> None:
        self._deck = build_deck(self.enabled_verbs, self.stage.pronouns)
        logger.debug(f"Deck rebuilt with {len(self._deck)} cards")

    # Timer

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm_timer(self) -> None:
        self._cancel_timer()
        if self.scheduler is None:
            return
        self._timer = self.scheduler.schedule(
            self.settings.auto_advance_seconds,
            partial(self._on_timer, self.instance),
        )

    def _on_timer(self, instance: int) -> bool:
        if instance == self.instance:
            self._timer = None
        return self.advance(instance)

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    # Phases

    def _apply(self, event: SessionEvent) -> Phase:
        new_phase = next_phase(self.phase, event, self.session, len(self.wrong_list))
        if new_phase is not self.phase:
            self._cancel_timer()
            logger.debug(f"Phase {self.phase.value} -> {new_phase.value} on {event.value}")
            if new_phase is Phase.RESULTS:
                monitoring.sessions_completed.labels(via=self.phase.value).inc()
            if not new_phase.is_active:
                self.current = None
            self.phase = new_phase
        return new_phase

    def _reset_session(self) -> None:
        self.session = SessionState(target=self.session_length)
        self.mistake_queue.clear()
        self.wrong_list.clear()
        self.feedback = None

    def _select_next(self) -> Card:
        self._cancel_timer()
        candidate = select_card(self.candidates(), self.phase, self.mistake_queue, self.wrong_list, self.rng)
        self.current = candidate.card
        self.instance += 1
        self.feedback = None
        return self.current

    def _begin_practice(self, event: SessionEvent) -> Card:
        if not self._deck:
            raise EmptyDeckError()
        next_phase(self.phase, event, self.session, len(self.wrong_list))
        self._reset_session()
        self._apply(event)
        monitoring.sessions_started.inc()
        logger.info(f"Session started: {len(self._deck)} cards, target {self.session.target}")
        return self._select_next()

    def start(self) -> Card:
        """Start a fresh practice session and return its first card."""
        return self._begin_practice(SessionEvent.START)

    def restart(self) -> Card:
        """Leave the results screen: review remaining mistakes or practise again."""
        target = next_phase(self.phase, SessionEvent.RESTART, self.session, len(self.wrong_list))
        if target is Phase.PRACTICE:
            return self._begin_practice(SessionEvent.RESTART)
        if not self._deck:
            raise EmptyDeckError()
        self.feedback = None
        self._apply(SessionEvent.RESTART)
        return self._select_next()

    def back_to_setup(self) -> None:
        self._apply(SessionEvent.BACK_TO_SETUP)
        self._reset_session()

    # Answers

    def submit(self, answer: str) -> Optional[Feedback]:
        """Grade an answer to the current card.

        Returns None when no card is waiting for an answer, i.e. outside of
        practice and review or while the previous feedback is shown.
        """
        if not self.phase.is_active or self.current is None or self.feedback is not None:
            logger.debug("Answer ignored, no card is waiting for one")
            return None

        card = self.current
        previous = self.store.get(card.id)
        result = grade(card, answer, previous, self.stage.ignore_accents)
        self.store.cards[card.id] = result.stats
        self._persist()

        if result.stats.level > previous.level:
            monitoring.level_changes.labels(direction="up").inc()
        elif result.stats.level < previous.level:
            monitoring.level_changes.labels(direction="down").inc()
        monitoring.answers_total.labels(result="correct" if result.ok else "wrong").inc()

        self.session.record(result.ok)
        update_mistakes(card.id, result.ok, self.phase, self.mistake_queue, self.wrong_list)
        self.feedback = Feedback(ok=result.ok, expected=card.answer, user=answer)
        logger.debug(f"Card {card.id} answered {'correctly' if result.ok else 'wrongly'}, level {result.stats.level}")

        self._apply(SessionEvent.ANSWER_RECORDED)
        if result.ok and self.phase.is_active:
            self._arm_timer()
        return self.feedback

    def advance(self, instance: Optional[int] = None) -> bool:
        """Move past the shown feedback to the next card.

        Only the first call for a card instance advances; later calls, and
        calls naming another instance, do nothing and return False.
        """
        if self.feedback is None or not self.phase.is_active:
            return False
        if instance is not None and instance != self.instance:
            return False
        self._select_next()
        return True

    # Configuration

    @staticmethod
    def _checked_verbs(verbs: Iterable[str]) -> List[str]:
        checked: List[str] = []
        for verb in verbs:
            if verb not in VERB_KEYS:
                raise ValueError(f"Unknown verb: {verb}")
            if verb not in checked:
                checked.append(verb)
        return checked

    @staticmethod
    def _check_stage_index(index: int) -> None:
        if not 0 <= index < len(STAGES):
            raise ValueError(f"Stage must be between 0 and {len(STAGES) - 1}")

    def _deck_changed(self) -> None:
        self._rebuild_deck()
        if self.phase.is_active and self.feedback is None:
            self._select_next()

    def set_enabled_verbs(self, verbs: Iterable[str]) -> None:
        verbs = self._checked_verbs(verbs)
        if not verbs and self.phase.is_active:
            raise EmptyDeckError()
        self.enabled_verbs = verbs
        self._deck_changed()

    def toggle_verb(self, verb: str) -> bool:
        """Enable or disable a verb; returns whether it is enabled afterwards."""
        if verb in self.enabled_verbs:
            self.set_enabled_verbs([v for v in self.enabled_verbs if v != verb])
            return False
        self.set_enabled_verbs(self.enabled_verbs + [verb])
        return True

    def select_all_verbs(self) -> None:
        self.set_enabled_verbs(VERB_KEYS)

    def select_no_verbs(self) -> None:
        self.set_enabled_verbs([])

    def set_stage(self, index: int) -> None:
        self._check_stage_index(index)
        self.stage_index = index
        self._deck_changed()

    def set_session_length(self, length: int) -> None:
        """Number of answers in the next session."""
        s = self.settings
        if not s.min_session_length <= length <= s.max_session_length:
            raise ValueError(f"Session length must be between {s.min_session_length} and {s.max_session_length}")
        if (length - s.min_session_length) % s.session_length_step:
            raise ValueError(f"Session length must be a multiple of {s.session_length_step}")
        self.session_length = length

    # Progress

    def _persist(self) -> None:
        if self.progress is not None:
            self.progress.save(self.store)

    def reset_progress(self) -> None:
        """Forget all card statistics."""
        self.store.clear()
        self._persist()
        logger.info("Progress reset")

    def close(self) -> None:
        self._cancel_timer()

    def view(self) -> TrainerView:
        candidates = self.candidates()
        return TrainerView(
            phase=self.phase,
            stage_index=self.stage_index,
            stage=self.stage,
            session=SessionState(self.session.correct, self.session.total, self.session.target),
            card=self.current,
            instance=self.instance,
            feedback=self.feedback,
            deck_size=len(candidates),
            mastered=sum(1 for c in candidates if c.level >= self.settings.max_level),
            wrong_count=len(self.wrong_list),
        )
