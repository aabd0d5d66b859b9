"""Fixed quiz content: the five-question data privacy quiz.

Questions are immutable and validated when the module is imported, so a
malformed definition fails at startup rather than mid-quiz.
"""
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple


@dataclass(frozen=True)
class Question:
    id: int
    prompt: str
    options: Tuple[str, ...]
    correct_index: int
    explanation: str

    def __post_init__(self):
        if len(self.options) < 2:
            raise ValueError(f"question {self.id} needs at least two options")
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"question {self.id} correct_index {self.correct_index} out of range"
            )


class QuizDefinition:
    """Ordered, immutable sequence of questions."""

    def __init__(self, questions: Sequence[Question]):
        if not questions:
            raise ValueError("a quiz needs at least one question")
        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise ValueError("question ids must be unique")
        self._questions = tuple(questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __getitem__(self, index: int) -> Question:
        return self._questions[index]

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)


PRIVACY_QUIZ = QuizDefinition(
    [
        Question(
            id=1,
            prompt="What is the primary purpose of GDPR (General Data Protection Regulation)?",
            options=(
                "To increase website loading speeds",
                "To protect personal data and privacy rights",
                "To standardize web design across Europe",
                "To reduce internet costs",
            ),
            correct_index=1,
            explanation="GDPR is designed to protect personal data and give individuals control over their privacy.",
        ),
        Question(
            id=2,
            prompt="Which of these is considered personal data under privacy laws?",
            options=(
                "Your IP address",
                "Your device's screen resolution",
                "Anonymous analytics data",
                "Public website content",
            ),
            correct_index=0,
            explanation="IP addresses can be used to identify individuals and are considered personal data.",
        ),
        Question(
            id=3,
            prompt="What are tracking cookies primarily used for?",
            options=(
                "Improving website security",
                "Storing user preferences",
                "Following users across different websites",
                "Making websites load faster",
            ),
            correct_index=2,
            explanation="Tracking cookies follow users across sites to build detailed profiles for advertising.",
        ),
        Question(
            id=4,
            prompt="How long can websites typically store your personal data?",
            options=(
                "Forever, once collected",
                "Only as long as necessary for the stated purpose",
                "Exactly one year",
                "Until you clear your browser cache",
            ),
            correct_index=1,
            explanation="Privacy laws require data to be deleted when no longer needed for its original purpose.",
        ),
        Question(
            id=5,
            prompt="What right do you have regarding your personal data under most privacy laws?",
            options=(
                "The right to free internet access",
                "The right to access, correct, and delete your data",
                "The right to unlimited data storage",
                "The right to anonymous browsing",
            ),
            correct_index=1,
            explanation="Privacy laws grant individuals rights to access, rectify, and erase their personal data.",
        ),
    ]
)
