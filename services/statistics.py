"""Site-wide statistics: the single shared counter row.

Every completed quiz folds one contribution into ``site_statistics`` row 1.
Writers never lock; each attempt reads the row, computes the new totals and
commits a versioned ``UPDATE ... WHERE id = ? AND version = ?``. If another
writer got there first the update matches no row, SQLAlchemy raises
``StaleDataError`` and the attempt is retried from the read after a short
exponential backoff. The first-ever write races on ``INSERT`` instead and
surfaces as ``IntegrityError``, handled the same way.

A contribution that carries an ``attempt_id`` also inserts that id into
``consumed_attempts`` in the same transaction. Replaying an attempt (a
double-clicked final answer, a resent pre-completion cookie) finds the id
already there and leaves the counters alone.

``StatisticsAggregator.apply`` either commits the contribution exactly once or
raises ``AggregationFailed``. ``StatisticsAggregator.record`` wraps it for the
web layer and falls back to a plain read, returning a ``BestEffortSnapshot``
so a stale read is never mistaken for a durable write.
"""
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from models import STATISTICS_ROW_ID, ConsumedAttempt, SiteStatistics, db
from services.errors import AggregationFailed, InvalidInput, TransientConflict
from services.scoring import percent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contribution:
    """One completed session's input to the aggregate."""

    score: int
    total_questions: int
    cookie_consent: Optional[bool]
    tos_accepted: Optional[bool]
    # set for quiz attempts; a given attempt is folded in at most once
    attempt_id: Optional[str] = None

    def __post_init__(self):
        for name in ("score", "total_questions"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInput(f"{name} must be an integer, got {value!r}")
        if self.total_questions <= 0:
            raise InvalidInput(f"total_questions must be positive, got {self.total_questions}")
        if not 0 <= self.score <= self.total_questions:
            raise InvalidInput(
                f"score {self.score} outside [0, {self.total_questions}]"
            )
        for name in ("cookie_consent", "tos_accepted"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, bool):
                raise InvalidInput(f"{name} must be a bool or None, got {value!r}")
        if self.attempt_id is not None and (not isinstance(self.attempt_id, str) or not self.attempt_id):
            raise InvalidInput(f"attempt_id must be a non-empty string, got {self.attempt_id!r}")


@dataclass(frozen=True)
class AggregateStatistics:
    total_users: int = 0
    cookie_acceptance_count: int = 0
    tos_acceptance_count: int = 0
    total_score_sum: int = 0
    total_quizzes_taken: int = 0

    @classmethod
    def from_row(cls, row: SiteStatistics) -> "AggregateStatistics":
        return cls(
            total_users=row.total_users,
            cookie_acceptance_count=row.cookie_acceptance_count,
            tos_acceptance_count=row.tos_acceptance_count,
            total_score_sum=row.total_score_sum,
            total_quizzes_taken=row.total_quizzes_taken,
        )

    def folded(self, contribution: Contribution) -> "AggregateStatistics":
        return AggregateStatistics(
            total_users=self.total_users + 1,
            cookie_acceptance_count=self.cookie_acceptance_count
            + (1 if contribution.cookie_consent is True else 0),
            tos_acceptance_count=self.tos_acceptance_count
            + (1 if contribution.tos_accepted is True else 0),
            total_score_sum=self.total_score_sum + contribution.score,
            total_quizzes_taken=self.total_quizzes_taken + 1,
        )

    @property
    def cookie_acceptance_percentage(self) -> int:
        return percent(self.cookie_acceptance_count, self.total_users)

    @property
    def tos_acceptance_percentage(self) -> int:
        return percent(self.tos_acceptance_count, self.total_users)

    def average_score_percentage(self, questions_per_quiz: int) -> int:
        return percent(self.total_score_sum, self.total_quizzes_taken * questions_per_quiz)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CommittedTotals:
    """Totals as of this session's own committed write."""

    totals: AggregateStatistics
    committed = True

    def to_dict(self) -> dict:
        return {"committed": True, "totals": self.totals.to_dict()}


@dataclass(frozen=True)
class BestEffortSnapshot:
    """The write failed; ``totals`` is a plain read (None if that failed too)."""

    totals: Optional[AggregateStatistics]
    reason: str = ""
    committed = False

    def to_dict(self) -> dict:
        return {
            "committed": False,
            "totals": self.totals.to_dict() if self.totals is not None else None,
            "reason": self.reason,
        }


AggregationResult = Union[CommittedTotals, BestEffortSnapshot]


def result_from_dict(data: Optional[dict]) -> Optional[AggregationResult]:
    if not data:
        return None
    totals = AggregateStatistics(**data["totals"]) if data.get("totals") else None
    if data.get("committed") and totals is not None:
        return CommittedTotals(totals)
    return BestEffortSnapshot(totals, data.get("reason", ""))


class StatisticsAggregator:
    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        max_attempts: int = 5,
        backoff: float = 0.05,
        backoff_cap: float = 1.0,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        # Default to the Flask-SQLAlchemy scoped session of the current app context
        self._session_factory = session_factory or (lambda: db.session)
        self.max_attempts = max(1, int(max_attempts))
        self.backoff = max(0.0, float(backoff))
        self.backoff_cap = max(0.0, float(backoff_cap))
        self._sleep = sleep or time.sleep

    @classmethod
    def from_app(cls, app, **overrides) -> "StatisticsAggregator":
        kwargs = {
            "max_attempts": app.config.get("STATS_MAX_ATTEMPTS", 5),
            "backoff": app.config.get("STATS_BACKOFF_SECONDS", 0.05),
            "backoff_cap": app.config.get("STATS_BACKOFF_CAP_SECONDS", 1.0),
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after failed attempt ``attempt`` (1-based)."""
        return min(self.backoff_cap, self.backoff * (2 ** (attempt - 1)))

    def _apply_once(self, session, contribution: Contribution) -> Tuple[AggregateStatistics, bool]:
        """One read-modify-write; returns the totals and whether this call counted."""
        row = session.get(SiteStatistics, STATISTICS_ROW_ID, populate_existing=True)
        if contribution.attempt_id is not None:
            if session.get(ConsumedAttempt, contribution.attempt_id) is not None:
                row = session.get(SiteStatistics, STATISTICS_ROW_ID, populate_existing=True)
                current = AggregateStatistics.from_row(row) if row is not None else AggregateStatistics()
                return current, False
            session.add(ConsumedAttempt(attempt_id=contribution.attempt_id))
            try:
                session.flush()
            except IntegrityError as e:
                raise TransientConflict(f"attempt {contribution.attempt_id} consumed concurrently: {e}") from e
        inserting = row is None
        if inserting:
            current = AggregateStatistics()
            row = SiteStatistics(id=STATISTICS_ROW_ID)
            session.add(row)
        else:
            current = AggregateStatistics.from_row(row)

        updated = current.folded(contribution)
        row.total_users = updated.total_users
        row.cookie_acceptance_count = updated.cookie_acceptance_count
        row.tos_acceptance_count = updated.tos_acceptance_count
        row.total_score_sum = updated.total_score_sum
        row.total_quizzes_taken = updated.total_quizzes_taken

        try:
            session.commit()
        except StaleDataError as e:
            raise TransientConflict(f"statistics row changed since read: {e}") from e
        except IntegrityError as e:
            if not inserting:
                raise
            raise TransientConflict(f"statistics row created concurrently: {e}") from e
        return updated, True

    def apply(self, contribution: Contribution) -> AggregateStatistics:
        """Fold ``contribution`` into the shared row and return the committed totals.

        A contribution whose ``attempt_id`` was already consumed is not folded
        again; the current totals are returned instead.

        Raises AggregationFailed when every attempt conflicted or the store
        reported any other error.
        """
        last_conflict = None
        for attempt in range(1, self.max_attempts + 1):
            session = self._session_factory()
            try:
                totals, counted = self._apply_once(session, contribution)
                if counted:
                    logger.info(
                        "statistics committed attempt=%s total_users=%s",
                        attempt,
                        totals.total_users,
                    )
                else:
                    logger.info("statistics already include attempt %s", contribution.attempt_id)
                return totals
            except TransientConflict as e:
                session.rollback()
                last_conflict = e
                logger.info(
                    "statistics conflict (attempt %s/%s): %s", attempt, self.max_attempts, e
                )
            except SQLAlchemyError as e:
                session.rollback()
                raise AggregationFailed(f"statistics store error: {e}", attempts=attempt) from e
            finally:
                session.close()

            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                if delay:
                    self._sleep(delay)

        raise AggregationFailed(
            f"statistics update conflicted on all {self.max_attempts} attempts",
            attempts=self.max_attempts,
        ) from last_conflict

    def read(self) -> AggregateStatistics:
        """Plain read of the current totals; zeros before the first write."""
        session = self._session_factory()
        try:
            row = session.get(SiteStatistics, STATISTICS_ROW_ID, populate_existing=True)
            return AggregateStatistics.from_row(row) if row is not None else AggregateStatistics()
        finally:
            session.close()

    def record(self, contribution: Contribution) -> AggregationResult:
        """Apply ``contribution``; on failure fall back to a best-effort read for display."""
        try:
            return CommittedTotals(self.apply(contribution))
        except AggregationFailed as e:
            logger.error("statistics update failed after %s attempt(s): %s", e.attempts, e)
            try:
                snapshot = self.read()
            except SQLAlchemyError as read_error:
                logger.warning("best-effort statistics read failed: %s", read_error)
                snapshot = None
            return BestEffortSnapshot(snapshot, str(e))
