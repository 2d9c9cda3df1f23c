"""Unit tests for identifier generation."""

import re
from unittest.mock import patch

import pytest

from app.core import ids
from app.core.ids import new_conversation_id, new_id, new_message_id, to_base36

ID_PATTERN = re.compile(r"^[a-z]+-\d+-[a-z0-9]+$")


class TestToBase36:
    """Test cases for base36 encoding."""

    @pytest.mark.parametrize(
        "value,expected",
        [(0, "0"), (9, "9"), (10, "a"), (35, "z"), (36, "10"), (123456789, "21i3v9"), (2**32 - 1, "1z141z3")],
    )
    def test_encodes_values(self, value, expected):
        assert to_base36(value) == expected

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestNewId:
    """Test cases for new_id."""

    def test_shape_with_strong_source(self):
        identifier = new_id("msg")
        assert ID_PATTERN.match(identifier)
        assert identifier.startswith("msg-")

    def test_uses_random_words(self):
        with patch.object(ids, "random_words", lambda: (123456789, 987654321)), patch.object(
            ids, "_now_millis", return_value=1704067200000
        ):
            assert new_id("msg") == "msg-1704067200000-21i3v9gc0uy9"

    def test_prefix_helpers(self):
        assert new_message_id().startswith("msg-")
        assert new_conversation_id().startswith("chat-")

    def test_fallback_when_source_raises(self):
        def broken():
            raise RuntimeError("no entropy")

        with patch.object(ids, "random_words", broken):
            identifier = new_id("msg")
        assert ID_PATTERN.match(identifier)

    def test_fallback_when_source_missing(self):
        with patch.object(ids, "random_words", None):
            identifier = new_id("chat")
        assert ID_PATTERN.match(identifier)
        assert identifier.startswith("chat-")

    @pytest.mark.parametrize("words", [(None, None), (5, None), (), (7,)])
    def test_fallback_when_words_incomplete(self, words):
        with patch.object(ids, "random_words", lambda: words):
            identifier = new_id("msg")
        assert ID_PATTERN.match(identifier)

    def test_ids_unique_on_strong_path(self):
        generated = {new_id("msg") for _ in range(5000)}
        assert len(generated) == 5000

    def test_ids_unique_on_fallback_path(self):
        with patch.object(ids, "random_words", None):
            generated = {new_id("msg") for _ in range(5000)}
        assert len(generated) == 5000
