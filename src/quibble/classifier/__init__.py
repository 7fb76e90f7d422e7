"""Answer classifier - one LLM call per transcript snapshot."""

from quibble.classifier.models import (
    Answer,
    CallFailed,
    Chatter,
    ClassifierError,
    ClassifierRequest,
    FailureReason,
    MalformedReplyError,
    MissingCredentialError,
    NoMatch,
    Outcome,
    OutcomeKind,
    ProviderError,
    Reset,
    TransportError,
)
from quibble.classifier.parsing import parse_reply
from quibble.classifier.providers import (
    AnswerClassifier,
    AnthropicClassifier,
    GeminiClassifier,
    MockClassifier,
    OpenAICompatibleClassifier,
    ProviderStatus,
    create_classifier,
)

__all__ = [
    "Answer",
    "AnswerClassifier",
    "AnthropicClassifier",
    "CallFailed",
    "Chatter",
    "ClassifierError",
    "ClassifierRequest",
    "FailureReason",
    "GeminiClassifier",
    "MalformedReplyError",
    "MissingCredentialError",
    "MockClassifier",
    "NoMatch",
    "OpenAICompatibleClassifier",
    "Outcome",
    "OutcomeKind",
    "ProviderError",
    "ProviderStatus",
    "Reset",
    "TransportError",
    "create_classifier",
    "parse_reply",
]
