"""Classifier request, outcome variants and error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar


class OutcomeKind(Enum):
    """Outcome kind enum."""

    ANSWER = "answer"
    NO_MATCH = "no_match"
    RESET = "reset"
    CHATTER = "chatter"
    CALL_FAILED = "call_failed"


class FailureReason(Enum):
    """Why a classification call produced no usable reply."""

    MISSING_CREDENTIAL = "missing_credential"
    TRANSPORT = "transport"
    PROVIDER = "provider"
    MALFORMED_REPLY = "malformed_reply"


@dataclass(frozen=True)
class ClassifierRequest:
    """Snapshot of a session's transcript handed to the classifier."""

    full_text: str
    clue_so_far: str = ""
    recent_segment: str = ""
    already_answered: bool = False
    last_answer: str | None = None


@dataclass(frozen=True)
class Answer:
    entity: str
    kind: ClassVar[OutcomeKind] = OutcomeKind.ANSWER


@dataclass(frozen=True)
class NoMatch:
    kind: ClassVar[OutcomeKind] = OutcomeKind.NO_MATCH


@dataclass(frozen=True)
class Reset:
    kind: ClassVar[OutcomeKind] = OutcomeKind.RESET


@dataclass(frozen=True)
class Chatter:
    kind: ClassVar[OutcomeKind] = OutcomeKind.CHATTER


@dataclass(frozen=True)
class CallFailed:
    """Displayed like ``NoMatch`` but kept distinct for logging."""

    reason: FailureReason
    detail: str = field(default="", compare=False)
    kind: ClassVar[OutcomeKind] = OutcomeKind.CALL_FAILED


Outcome = Answer | NoMatch | Reset | Chatter | CallFailed


class ClassifierError(Exception):
    """Base error raised inside a classifier adapter."""

    reason: FailureReason = FailureReason.PROVIDER


class MissingCredentialError(ClassifierError):
    reason = FailureReason.MISSING_CREDENTIAL


class TransportError(ClassifierError):
    """Network failure or timeout talking to the provider."""

    reason = FailureReason.TRANSPORT


class ProviderError(ClassifierError):
    """Provider answered with a non-success status."""

    reason = FailureReason.PROVIDER

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"HTTP {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body


class MalformedReplyError(ClassifierError):
    """Reply body could not be decoded or carried no recognizable tag."""

    reason = FailureReason.MALFORMED_REPLY
