"""
Tests for the Trigger Scorer.

1. Every known trigger maps to its fixed weight
2. Enum members and raw strings score the same
3. Unknown triggers score 0 and are logged, not rejected
"""
import logging

import pytest

from saintrix.models.db_models import TriggerType
from saintrix.services.sentiment.trigger_scorer import (
    score, parse_trigger_type, TRIGGER_WEIGHTS, AT_RISK_THRESHOLD,
)


class TestScore:

    @pytest.mark.parametrize("trigger_type,expected", [
        ("inactivity", 30),
        ("support_contact", 25),
        ("missing_docs", 25),
        ("unopened_letters", 20),
    ])
    def test_known_triggers_use_weight_table(self, trigger_type, expected):
        assert score(trigger_type) == expected

    def test_enum_member_scores_like_its_value(self):
        for member in TriggerType:
            assert score(member) == score(member.value) == TRIGGER_WEIGHTS[member]

    @pytest.mark.parametrize("trigger_type", ["late_payment", "", None, "INACTIVITY"])
    def test_unknown_trigger_scores_zero(self, trigger_type):
        assert score(trigger_type) == 0

    def test_unknown_trigger_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="saintrix.services.sentiment.trigger_scorer"):
            score("late_payment")
        assert "late_payment" in caplog.text

    def test_weight_table_covers_every_trigger(self):
        assert set(TRIGGER_WEIGHTS) == set(TriggerType)

    def test_threshold_needs_more_than_one_trigger(self):
        assert max(TRIGGER_WEIGHTS.values()) < AT_RISK_THRESHOLD


class TestParseTriggerType:

    def test_parses_known_value(self):
        assert parse_trigger_type("missing_docs") is TriggerType.MISSING_DOCS

    def test_unknown_value_is_none(self):
        assert parse_trigger_type("bogus") is None
