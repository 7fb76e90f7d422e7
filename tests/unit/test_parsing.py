"""Tests for classifier reply parsing."""

import pytest

from quibble.classifier import (
    Answer,
    CallFailed,
    Chatter,
    FailureReason,
    NoMatch,
    Reset,
    parse_reply,
)
from quibble.classifier.parsing import unwrap_reply


class TestParseReply:
    """Tests for parse_reply."""

    def test_answer(self):
        """Test an answer reply."""
        assert parse_reply("ANSWER: Franz Kafka") == Answer("Franz Kafka")

    def test_answer_entity_trimmed(self):
        """Test answer entities are trimmed."""
        assert parse_reply("answer:    The Battle of Hastings   ") == Answer("The Battle of Hastings")

    @pytest.mark.parametrize(
        "reply,expected",
        [
            ("NO MATCH", NoMatch()),
            ("no match", NoMatch()),
            ("RESET", Reset()),
            ("Reset", Reset()),
            ("CHATTER", Chatter()),
            ("  chatter\n", Chatter()),
        ],
    )
    def test_tags(self, reply, expected):
        """Test bare tags in any case."""
        assert parse_reply(reply) == expected

    def test_priority_no_match_before_answer(self):
        """Test no match outranks an answer."""
        assert parse_reply("ANSWER: Paris\nNO MATCH") == NoMatch()

    def test_tag_must_start_a_line(self):
        """Test tags inside prose are ignored."""
        outcome = parse_reply("I think this is a reset")
        assert isinstance(outcome, CallFailed)

    def test_answer_on_later_line(self):
        """Test an answer tag on a later line."""
        assert parse_reply("Sure.\nANSWER: Photosynthesis") == Answer("Photosynthesis")

    def test_fenced_reply(self):
        """Test code-fenced replies."""
        assert parse_reply("```\nANSWER: Marie Curie\n```") == Answer("Marie Curie")

    def test_quoted_reply(self):
        """Test quoted replies."""
        assert parse_reply('"RESET"') == Reset()

    def test_long_untagged_reply_fails(self):
        """Test long untagged replies fail."""
        reply = "blah blah blah " * 5
        outcome = parse_reply(reply)

        assert isinstance(outcome, CallFailed)
        assert outcome.reason == FailureReason.MALFORMED_REPLY

    def test_short_untagged_reply_fails(self):
        """Test short untagged replies fail."""
        outcome = parse_reply("blah blah blah")

        assert isinstance(outcome, CallFailed)
        assert outcome.reason == FailureReason.MALFORMED_REPLY

    def test_empty_answer_is_not_an_answer(self):
        """Test an empty answer tag fails."""
        assert isinstance(parse_reply("ANSWER:"), CallFailed)

    @pytest.mark.parametrize("reply", ["", "   ", None])
    def test_empty_reply(self, reply):
        """Test empty replies fail."""
        assert isinstance(parse_reply(reply), CallFailed)


class TestUnwrapReply:
    def test_strips_language_fence(self):
        """Test fences with a language tag are stripped."""
        assert unwrap_reply("```text\nCHATTER\n```") == "CHATTER"

    def test_strips_nested_quotes(self):
        """Test nested quotes are stripped."""
        assert unwrap_reply("`'NO MATCH'`") == "NO MATCH"
