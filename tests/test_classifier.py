"""Tests for command classification and the moderation gate."""

import pytest

from chat_plays.classifier import (
    DEFAULT_COMMAND_TABLE,
    CommandClassifier,
    build_rules,
    match_first,
)
from chat_plays.moderation import JsonUserList, ModerationLists


@pytest.fixture
def rules():
    return build_rules(DEFAULT_COMMAND_TABLE)


@pytest.fixture
def moderation():
    return ModerationLists(JsonUserList(name="blacklist"), JsonUserList(name="whitelist"))


class TestMatchFirst:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("left", "left"),
            ("mouse left", "left"),
            ("left 3", "left"),
            ("up left", "upleft"),
            ("leftup", "upleft"),
            ("center", "center"),
            ("click", "click"),
            ("left click", "click"),
            ("rclick", "rclick"),
            ("attack", "rclick"),
            ("3", "number"),
            ("f4", "fkey"),
            ("skill 2", "fkey"),
            ("repeat", "repeat"),
            ("rep off", "repeatoff"),
            ("belt 2", "belt"),
            ("belt pos 2", "belt pos"),
            ("inv", "inv"),
            ("inventory boots", "inv slot"),
            ("map", "map"),
        ],
    )
    def test_known_commands(self, rules, text, expected):
        result = match_first(rules, text)
        assert result is not None
        assert result.command_id == expected

    def test_no_match(self, rules):
        assert match_first(rules, "hello chat") is None
        assert match_first(rules, "left 0") is None

    def test_first_match_wins(self, rules):
        # "left skill" matches the left menu rule, never the plain left rule
        assert match_first(rules, "left skill").command_id == "left menu"

    def test_params_hold_whole_match_and_groups(self, rules):
        result = match_first(rules, "left 4")
        assert result.params[0] == "left 4"
        assert result.params[-1] == "4"

    def test_unmatched_optional_group_is_none(self, rules):
        result = match_first(rules, "left")
        assert result.params[-1] is None

    def test_esc_is_case_sensitive(self, rules):
        assert match_first(rules, "esc").command_id == "esc"
        assert match_first(rules, "ESC") is None

    def test_other_rules_are_case_insensitive(self, rules):
        assert match_first(rules, "LEFT").command_id == "left"

    def test_unanchored_rule_matches_anywhere(self, rules):
        # The left menu rule has no start anchor
        assert match_first(rules, "open left menu").command_id == "left menu"


class TestCommandClassifier:
    def test_classifies(self, moderation):
        classifier = CommandClassifier(moderation=moderation)
        result = classifier.classify("viewer", "right 2")
        assert result.command_id == "right"
        assert result.params[-1] == "2"

    def test_blocked_sender_is_rejected(self, moderation):
        moderation.block("Troll")
        classifier = CommandClassifier(moderation=moderation)

        assert classifier.classify("troll", "left") is None
        assert classifier.classify("viewer", "left") is not None

    def test_filtered_commands_are_dropped(self):
        classifier = CommandClassifier(filtered_commands=["map"])
        assert classifier.classify("viewer", "map") is None
        assert classifier.classify("viewer", "inv").command_id == "inv"

    def test_throttled_command_accepted_once_per_window(self):
        now = [100.0]
        classifier = CommandClassifier(
            throttled_commands={"esc": 30000}, clock=lambda: now[0]
        )

        assert classifier.classify("a", "esc") is not None
        now[0] += 10
        assert classifier.classify("b", "esc") is None
        now[0] += 21
        assert classifier.classify("c", "esc") is not None

    def test_throttle_only_applies_to_listed_commands(self):
        classifier = CommandClassifier(throttled_commands={"esc": 30000}, clock=lambda: 0.0)
        assert classifier.classify("a", "left") is not None
        assert classifier.classify("a", "left") is not None

    def test_custom_rules(self):
        classifier = CommandClassifier(rules=build_rules([("jump", r"^jump$", 0)]))
        assert classifier.classify("a", "jump").command_id == "jump"
        assert classifier.classify("a", "left") is None
