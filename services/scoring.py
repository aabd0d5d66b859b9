# services/scoring.py - deterministic answers -> score mapping
from dataclasses import dataclass
from fractions import Fraction
from math import floor
from typing import Sequence, Tuple

from services.errors import InvalidInput
from services.quiz_bank import QuizDefinition


def percent(numerator: int, denominator: int) -> int:
    """Return round(numerator / denominator * 100), halves rounded up; 0 for a zero denominator."""
    if not denominator:
        return 0
    # exact rational arithmetic so 12.5 always rounds to 13
    return floor(Fraction(numerator * 100, denominator) + Fraction(1, 2))


@dataclass(frozen=True)
class QuizOutcome:
    score: int
    total_questions: int
    percentage: int
    answers: Tuple[int, ...] = ()

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "total_questions": self.total_questions,
            "percentage": self.percentage,
            "answers": list(self.answers),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuizOutcome":
        return cls(
            score=int(data["score"]),
            total_questions=int(data["total_questions"]),
            percentage=int(data["percentage"]),
            answers=tuple(int(a) for a in data.get("answers", ())),
        )


def score_answers(quiz: QuizDefinition, answers: Sequence[int]) -> QuizOutcome:
    """Score a complete answer sequence against the quiz.

    Raises InvalidInput when the number of answers does not match the number
    of questions or an answer index is out of range for its question.
    """
    if len(answers) != len(quiz):
        raise InvalidInput(f"expected {len(quiz)} answers, got {len(answers)}")

    score = 0
    for position, (question, answer) in enumerate(zip(quiz, answers)):
        # bool is an int subclass but never a valid option index
        if isinstance(answer, bool) or not isinstance(answer, int):
            raise InvalidInput(f"answer {position} is not an option index: {answer!r}")
        if not 0 <= answer < len(question.options):
            raise InvalidInput(
                f"answer {position} index {answer} outside [0, {len(question.options)})"
            )
        if answer == question.correct_index:
            score += 1

    total = len(quiz)
    return QuizOutcome(
        score=score,
        total_questions=total,
        percentage=percent(score, total),
        answers=tuple(answers),
    )


def score_band(percentage: int) -> str:
    """Feedback band for the results page."""
    if percentage >= 80:
        return "excellent"
    if percentage >= 60:
        return "good"
    return "needs-work"
