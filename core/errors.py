"""
Exception hierarchy for the Wordwise engine.

Every error raised by the scheduler, the assessment session and the
repositories derives from WordwiseError so callers (the CLI, a web layer)
can catch engine failures in one place.
"""


class WordwiseError(Exception):
    """Base class for all engine errors."""

    pass


class InvalidQualityError(WordwiseError, ValueError):
    """Raised when a recall quality rating is outside the 0-5 integer scale."""

    pass


class InvalidSettingsError(WordwiseError, ValueError):
    """Raised when assessment settings are inconsistent."""

    pass


class InsufficientItemsError(WordwiseError):
    """Raised when a session requests more questions than the item pool holds."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Requested {requested} questions but only {available} items are available"
        )


class SessionStateError(WordwiseError):
    """Raised when a session operation is invalid in the current lifecycle state."""

    pass


class SkipNotAllowedError(SessionStateError):
    """Raised when skip() is called on a session whose settings forbid skipping."""

    pass


class QuestionIndexError(WordwiseError, IndexError):
    """Raised when navigating to a question index outside the session."""

    pass


class AnswerDecodeError(WordwiseError, ValueError):
    """Raised when an encoded answer payload cannot be decoded."""

    pass


class ItemNotFoundError(WordwiseError, KeyError):
    """Raised when a repository has no item with the requested id."""

    pass
