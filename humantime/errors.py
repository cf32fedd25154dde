"""
Exception types for Humantime.

Every error raised by the resolver, tokenizer, stores and session tracker
derives from HumantimeError so the CLI can report them uniformly.
"""

from typing import List, Optional, Sequence


# Example phrases shown alongside parse errors.
DURATION_EXAMPLES = ["1h30m", "90m", "2 hours", "30 minutes", "1h 30m", "2.5h"]
TIMESTAMP_EXAMPLES = ["9am", "5:30pm", "14:30", "yesterday at 3pm", "2 hours ago", "now"]
PERIOD_EXAMPLES = ["today", "yesterday", "this week", "last week", "this month", "last month"]


class HumantimeError(Exception):
    """Base exception for time tracking operations."""

    pass


class ParseError(HumantimeError):
    """Raised when a time phrase or argument cannot be interpreted."""

    def __init__(
        self,
        input: str,
        field: str = "timestamp",
        message: str = "could not parse time",
        examples: Optional[Sequence[str]] = None,
    ) -> None:
        self.input = input
        self.field = field
        self.message = message
        self.examples: List[str] = list(examples or [])
        super().__init__(f"invalid {field} '{input}': {message}")

    def format_with_examples(self) -> str:
        """Return the error message followed by a list of valid examples."""
        text = str(self)
        if self.examples:
            lines = "\n".join(f"  - {example}" for example in self.examples)
            text += f"\n\nValid examples:\n{lines}"
        return text


class ValidationError(HumantimeError):
    """Raised when an identifier breaks the SID rules."""

    def __init__(self, field: str, value: str, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"invalid {field} '{value}': {message}")


class NotFoundError(HumantimeError):
    """Raised when a referenced block or record does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")


class StateError(HumantimeError):
    """Raised when an operation is not valid in the current session state."""

    pass


def timestamp_error(input: str) -> ParseError:
    """Build a ParseError for an unrecognized instant phrase."""
    return ParseError(input, "timestamp", "could not parse time", TIMESTAMP_EXAMPLES)


def duration_error(input: str) -> ParseError:
    """Build a ParseError for an unrecognized duration phrase."""
    return ParseError(input, "duration", "could not parse duration", DURATION_EXAMPLES)
