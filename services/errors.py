# services/errors.py - exception hierarchy shared by the quiz services


class QuizError(Exception):
    """Base class for errors raised by the quiz services."""


class InvalidInput(QuizError, ValueError):
    """Malformed answers or contribution; indicates a programming defect."""


class TransitionRefused(QuizError):
    """The flow controller rejected an event in the current stage."""

    def __init__(self, stage, event, reason: str):
        self.stage = stage
        self.event = event
        self.reason = reason
        super().__init__(f"{type(event).__name__} refused in {stage.value}: {reason}")


class TransientConflict(QuizError):
    """A concurrent writer changed the statistics row between read and write."""


class AggregationFailed(QuizError):
    """The statistics update could not be applied within the retry budget."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)
