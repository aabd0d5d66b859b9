"""Per-session flow: landing -> cookie consent -> terms -> quiz -> results.

``transition`` is a pure function from (state, event) to a new state and
raises ``TransitionRefused`` for events that are not valid in the current
stage. ``FlowController`` wraps it for the web layer and hands the outcome
to the statistics aggregator exactly once, on the transition into
``Stage.COMPLETED``.
"""
import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from services.errors import TransitionRefused
from services.quiz_bank import QuizDefinition
from services.scoring import QuizOutcome, score_answers
from services.statistics import Contribution, result_from_dict

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    LANDING = "landing"
    CONSENT_PENDING = "consent_pending"
    TERMS_PENDING = "terms_pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    # entered on restart; behaves exactly like LANDING
    IDLE = "idle"


LANDING_STAGES = (Stage.LANDING, Stage.IDLE)


# Events


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class CookieDecision:
    accepted: bool


@dataclass(frozen=True)
class TermsDecision:
    accepted: bool
    # identifies the attempt an acceptance starts; the aggregate counts each one once
    attempt_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class DismissTerms:
    pass


@dataclass(frozen=True)
class SelectAnswer:
    index: int


@dataclass(frozen=True)
class ShowExplanation:
    pass


@dataclass(frozen=True)
class SubmitAnswer:
    pass


@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class QuizSession:
    current_index: int = 0
    answers: Tuple[int, ...] = ()
    selection: Optional[int] = None
    explanation_shown: bool = False
    attempt_id: Optional[str] = None


@dataclass(frozen=True)
class FlowState:
    stage: Stage = Stage.LANDING
    cookie_consent: Optional[bool] = None
    tos_accepted: Optional[bool] = None
    session: Optional[QuizSession] = None
    outcome: Optional[QuizOutcome] = None
    # CommittedTotals or BestEffortSnapshot once the aggregator has run
    aggregation: Optional[object] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        data = {
            "stage": self.stage.value,
            "cookie_consent": self.cookie_consent,
            "tos_accepted": self.tos_accepted,
            "session": None,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "aggregation": self.aggregation.to_dict() if self.aggregation else None,
        }
        if self.session is not None:
            data["session"] = {
                "current_index": self.session.current_index,
                "answers": list(self.session.answers),
                "selection": self.session.selection,
                "explanation_shown": self.session.explanation_shown,
                "attempt_id": self.session.attempt_id,
            }
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FlowState":
        if not data:
            return cls()
        raw_session = data.get("session")
        quiz_session = None
        if raw_session is not None:
            quiz_session = QuizSession(
                current_index=int(raw_session.get("current_index", 0)),
                answers=tuple(int(a) for a in raw_session.get("answers", ())),
                selection=raw_session.get("selection"),
                explanation_shown=bool(raw_session.get("explanation_shown", False)),
                attempt_id=raw_session.get("attempt_id"),
            )
        outcome = data.get("outcome")
        return cls(
            stage=Stage(data.get("stage", Stage.LANDING.value)),
            cookie_consent=data.get("cookie_consent"),
            tos_accepted=data.get("tos_accepted"),
            session=quiz_session,
            outcome=QuizOutcome.from_dict(outcome) if outcome else None,
            aggregation=result_from_dict(data.get("aggregation")),
        )


def _refuse(state: FlowState, event, reason: str):
    raise TransitionRefused(state.stage, event, reason)


def transition(state: FlowState, event, quiz: QuizDefinition) -> FlowState:
    """Return the state after ``event``; ``state`` itself is never modified."""
    stage = state.stage

    if isinstance(event, CookieDecision):
        if state.cookie_consent is not None:
            _refuse(state, event, "cookie decision already recorded")
        if stage in LANDING_STAGES:
            return replace(state, cookie_consent=bool(event.accepted))
        if stage is Stage.CONSENT_PENDING:
            return replace(state, stage=Stage.TERMS_PENDING, cookie_consent=bool(event.accepted))
        _refuse(state, event, "no cookie prompt in this stage")

    if isinstance(event, Start):
        if stage not in LANDING_STAGES:
            _refuse(state, event, "quiz already started")
        if state.cookie_consent is None:
            return replace(state, stage=Stage.CONSENT_PENDING)
        return replace(state, stage=Stage.TERMS_PENDING)

    if isinstance(event, TermsDecision):
        if stage is not Stage.TERMS_PENDING:
            _refuse(state, event, "no terms prompt in this stage")
        if event.accepted:
            return replace(
                state,
                stage=Stage.IN_PROGRESS,
                tos_accepted=True,
                session=QuizSession(attempt_id=event.attempt_id),
            )
        # rejected: the attempt is abandoned and nothing about it is kept
        return replace(state, stage=Stage.LANDING, tos_accepted=None, session=None)

    if isinstance(event, DismissTerms):
        if stage is not Stage.TERMS_PENDING:
            _refuse(state, event, "no terms prompt in this stage")
        return replace(state, stage=Stage.LANDING)

    if isinstance(event, SelectAnswer):
        if stage is not Stage.IN_PROGRESS:
            _refuse(state, event, "quiz is not in progress")
        question = quiz[state.session.current_index]
        if isinstance(event.index, bool) or not isinstance(event.index, int):
            _refuse(state, event, f"not an option index: {event.index!r}")
        if not 0 <= event.index < len(question.options):
            _refuse(state, event, f"option {event.index} does not exist")
        return replace(state, session=replace(state.session, selection=event.index))

    if isinstance(event, ShowExplanation):
        if stage is not Stage.IN_PROGRESS:
            _refuse(state, event, "quiz is not in progress")
        if state.session.selection is None:
            _refuse(state, event, "select an answer first")
        return replace(state, session=replace(state.session, explanation_shown=True))

    if isinstance(event, SubmitAnswer):
        if stage is not Stage.IN_PROGRESS:
            _refuse(state, event, "quiz is not in progress")
        if state.session.selection is None:
            _refuse(state, event, "no answer selected")
        answers = state.session.answers + (state.session.selection,)
        advanced = QuizSession(
            current_index=state.session.current_index + 1,
            answers=answers,
            attempt_id=state.session.attempt_id,
        )
        if advanced.current_index < len(quiz):
            return replace(state, session=advanced)
        return replace(
            state,
            stage=Stage.COMPLETED,
            session=advanced,
            outcome=score_answers(quiz, answers),
        )

    if isinstance(event, Restart):
        if stage is not Stage.COMPLETED:
            _refuse(state, event, "only a completed quiz can be restarted")
        return FlowState(stage=Stage.IDLE)

    raise TypeError(f"unknown flow event: {event!r}")


class FlowController:
    """Holds one browser session's flow state and dispatches events to it."""

    def __init__(self, quiz: QuizDefinition, aggregator=None, state: Optional[FlowState] = None):
        self.quiz = quiz
        self.aggregator = aggregator
        self._state = state or FlowState()

    @property
    def state(self) -> FlowState:
        return self._state

    def dispatch(self, event) -> FlowState:
        before = self._state
        after = transition(before, event, self.quiz)
        if before.stage is Stage.IN_PROGRESS and after.stage is Stage.COMPLETED:
            after = replace(after, aggregation=self._aggregate(after))
        if after.stage is not before.stage:
            logger.info("flow %s -> %s on %s", before.stage.value, after.stage.value, type(event).__name__)
        self._state = after
        return after

    def _aggregate(self, state: FlowState):
        if self.aggregator is None:
            return None
        contribution = Contribution(
            score=state.outcome.score,
            total_questions=state.outcome.total_questions,
            cookie_consent=state.cookie_consent,
            tos_accepted=state.tos_accepted,
            attempt_id=state.session.attempt_id,
        )
        return self.aggregator.record(contribution)
