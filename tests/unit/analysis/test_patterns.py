"""
Tests for pattern IDs, text and display helpers.
"""

import pytest

from rxscope import PatternType, Severity
from rxscope.analysis import (
    DEFAULT_THRESHOLDS,
    default_thresholds,
    generate_pattern_id,
    get_pattern_age,
    get_pattern_description,
    get_pattern_remediation,
    is_pattern_visible,
)
from rxscope.analysis.patterns import new_pattern, simple_hash


def make_pattern(timestamp=1000.0, is_expected=False):
    pattern = new_pattern(
        PatternType.STALE_MEMO, Severity.LOW, ["memo-1"], timestamp, "unused", {}
    )
    pattern.is_expected = is_expected
    return pattern


@pytest.mark.unit
class TestPatternIds:
    """Deterministic pattern identifiers."""

    def test_simple_hash_matches_string_hash_code(self):
        """The 31-multiplier hash of "abc" is 96354."""
        assert simple_hash("abc") == format(96354, "x")
        assert simple_hash("") == "0"

    def test_simple_hash_overflows_like_32_bit_ints(self):
        """Overflow wraps to a negative value whose magnitude is used."""
        assert simple_hash("polygenelubricants") == "80000000"

    def test_id_layout(self):
        """IDs are type, whole-millisecond timestamp and hash prefix."""
        assert generate_pattern_id(PatternType.DEEP_CHAIN, ["a", "b"], 1234.0) == (
            f"deep-chain-1234-{simple_hash('a,b')[:8]}"
        )

    def test_id_ignores_node_order(self):
        """Affected node IDs are sorted before hashing."""
        first = generate_pattern_id("hot-path", ["signal-2", "signal-1"], 10)
        second = generate_pattern_id("hot-path", ["signal-1", "signal-2"], 10)
        assert first == second

    def test_id_depends_on_timestamp(self):
        """The same finding at another instant gets another ID."""
        assert generate_pattern_id("hot-path", ["signal-1"], 10) != generate_pattern_id(
            "hot-path", ["signal-1"], 11
        )

    def test_new_pattern_fills_derived_fields(self):
        """new_pattern attaches the ID and the standard remediation."""
        pattern = make_pattern()
        assert pattern.id == generate_pattern_id(PatternType.STALE_MEMO, ["memo-1"], 1000.0)
        assert pattern.remediation == get_pattern_remediation(PatternType.STALE_MEMO)
        assert pattern.is_expected is False


@pytest.mark.unit
class TestPatternText:
    """Descriptions, ages and visibility."""

    def test_every_type_has_text(self):
        """Each pattern type has a description and a remediation."""
        for pattern_type in PatternType:
            assert get_pattern_description(pattern_type)
            assert get_pattern_remediation(pattern_type.value)

    @pytest.mark.parametrize(
        "elapsed_ms, expected",
        [
            (0, "just now"),
            (4_999, "just now"),
            (42_000, "42s ago"),
            (3 * 60_000, "3m ago"),
            (2 * 3_600_000 + 5, "2h ago"),
        ],
    )
    def test_age(self, elapsed_ms, expected):
        """Ages are bucketed into seconds, minutes and hours."""
        assert get_pattern_age(make_pattern(timestamp=1000.0), now=1000.0 + elapsed_ms) == expected

    def test_expected_patterns_are_hidden_by_default(self):
        """Expected patterns are only shown on request."""
        assert is_pattern_visible(make_pattern(), show_expected=False)
        assert not is_pattern_visible(make_pattern(is_expected=True), show_expected=False)
        assert is_pattern_visible(make_pattern(is_expected=True), show_expected=True)


@pytest.mark.unit
class TestDefaultThresholds:
    """Built-in detector thresholds."""

    def test_defaults(self):
        """Every detector has an enabled default."""
        values = {t.pattern_type: t.threshold_value for t in DEFAULT_THRESHOLDS}
        assert values == {
            PatternType.ORPHANED_EFFECT: 0,
            PatternType.DEEP_CHAIN: 5,
            PatternType.DIAMOND_PATTERN: 2,
            PatternType.HOT_PATH: 10,
            PatternType.HIGH_SUBSCRIPTIONS: 50,
            PatternType.STALE_MEMO: 0,
        }
        assert all(t.enabled for t in DEFAULT_THRESHOLDS)

    def test_default_thresholds_returns_fresh_copies(self):
        """Mutating one copy does not affect another."""
        first = default_thresholds()
        first[0].enabled = False
        assert default_thresholds()[0].enabled is True
