"""
Free-form argument tokenizer.

Turns words such as ``on clientwork/api 2 hours ago with note "review"``
into a structured request. Tokenizing never fails; time phrases are kept
as raw text and only resolved by ``ParsedArgs.process``.
"""

import re
from datetime import datetime
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel

from .sid import normalize_sid, parse_project_task
from .timestamp import resolve_instant

PROJECT_KEYWORDS = frozenset({"on", "to", "of"})
END_KEYWORDS = frozenset({"end", "ended", "until"})
SKIP_WORDS = frozenset({"block", "working", "work", "all", "at", "from"})

TIME_LIKE_WORDS = frozenset(
    {
        "now",
        "today",
        "yesterday",
        "tomorrow",
        "a",
        "an",
        "ago",
        "am",
        "pm",
        "this",
        "current",
        "last",
        "previous",
        "next",
        "s",
        "sec",
        "secs",
        "second",
        "seconds",
        "min",
        "mins",
        "minute",
        "minutes",
        "hr",
        "hrs",
        "hour",
        "hours",
        "day",
        "days",
        "week",
        "weeks",
        "month",
        "months",
        "quarter",
        "quarters",
        "year",
        "years",
    }
)

_QUOTED_RE = re.compile(r"""(['"])(.*?)\1|(\S+)""", re.S)


def is_time_like(token: str) -> bool:
    """Check whether a token can be part of a time phrase."""
    return token[:1].isdigit() or token.lower() in TIME_LIKE_WORDS


def tokenize(text: str) -> List[str]:
    """Split on whitespace, keeping quoted segments as single tokens."""
    tokens = []
    for match in _QUOTED_RE.finditer(text):
        if match.group(1):
            tokens.append(match.group(2))
        else:
            tokens.append(match.group(3))
    return tokens


class ParsedArgs(BaseModel):
    """Structured request produced by the tokenizer."""

    project_sid: str = ""
    task_sid: str = ""
    note: str = ""

    raw_project: str = ""
    raw_start: str = ""
    raw_end: str = ""

    has_project: bool = False
    has_task: bool = False
    has_note: bool = False
    has_start: bool = False
    has_end: bool = False

    timestamp_start: Optional[datetime] = None
    timestamp_end: Optional[datetime] = None

    def set_project_path(self, path: str) -> None:
        self.raw_project = path
        self.project_sid, self.task_sid = parse_project_task(path)
        self.has_project = self.project_sid != ""
        self.has_task = self.task_sid != ""

    def merge(
        self,
        project: Optional[str] = None,
        task: Optional[str] = None,
        note: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> "ParsedArgs":
        """Override parsed words with explicit option values."""
        if project:
            self.set_project_path(project)
        if task:
            self.task_sid = task
            self.has_task = True
        if note:
            self.note = note
            self.has_note = True
        if start:
            self.raw_start = start
            self.has_start = True
        if end:
            self.raw_end = end
            self.has_end = True
        return self

    def process(self, now: datetime) -> "ParsedArgs":
        """
        Normalize identifiers and resolve time phrases against ``now``.

        Without a start phrase the start instant is ``now`` itself.

        Raises:
            ValidationError: If the project or task is not a valid SID
            ParseError: If a time phrase cannot be resolved
        """
        if self.project_sid:
            self.project_sid = normalize_sid(self.project_sid, "project")
        if self.task_sid:
            self.task_sid = normalize_sid(self.task_sid, "task")

        self.timestamp_start = resolve_instant(self.raw_start, now) if self.raw_start else now
        self.timestamp_end = resolve_instant(self.raw_end, now) if self.raw_end else None
        return self


def _split_words(args: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(args, str):
        return tokenize(args)
    tokens: List[str] = []
    for word in args:
        # Words with inner whitespace were quoted by the shell.
        if len(word.split()) > 1:
            tokens.append(word.strip())
        else:
            tokens.extend(tokenize(word))
    return tokens


def _extract_note(tokens: List[str], result: ParsedArgs) -> List[str]:
    for i in range(len(tokens) - 2):
        if tokens[i].lower() == "with" and tokens[i + 1].lower() == "note":
            result.note = tokens[i + 2].strip()
            result.has_note = True
            return tokens[:i] + tokens[i + 3 :]
    return tokens


def parse_args(args: Union[str, Sequence[str]]) -> ParsedArgs:
    """
    Tokenize free-form command words.

    Args:
        args: argv words, or a single string to split quote-aware

    Returns:
        ParsedArgs with raw, unresolved time phrases
    """
    result = ParsedArgs()
    tokens = _extract_note(_split_words(args), result)

    expect_project = False
    is_end = False
    time_tokens: List[str] = []

    for index, token in enumerate(tokens):
        lower = token.lower()

        if lower in SKIP_WORDS:
            continue

        # "from 9am to 11am": "to" before a time phrase ends the start phrase.
        if (
            lower == "to"
            and time_tokens
            and not is_end
            and index + 1 < len(tokens)
            and is_time_like(tokens[index + 1])
        ):
            lower = "until"

        if lower in PROJECT_KEYWORDS:
            expect_project = True
            continue

        if lower in END_KEYWORDS:
            if time_tokens:
                result.raw_start = " ".join(time_tokens)
                result.has_start = True
                time_tokens = []
            is_end = True
            continue

        if expect_project:
            expect_project = False
            if not is_time_like(token):
                result.set_project_path(token)
                continue
        elif not result.has_project and not time_tokens and not is_end and not is_time_like(token):
            result.set_project_path(token)
            continue

        time_tokens.append(token)

    if time_tokens:
        phrase = " ".join(time_tokens)
        if is_end:
            result.raw_end = phrase
            result.has_end = True
        else:
            result.raw_start = phrase
            result.has_start = True

    return result
