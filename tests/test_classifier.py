"""Tests for the rule-based email classifier."""

import pytest

from job_tracker.classifier import (
    DEFAULT_RULE_DATA,
    OTHER_LABEL,
    ClassificationRules,
    EmailClassifier,
)
from job_tracker.errors import ConfigurationError


@pytest.fixture
def classifier():
    return EmailClassifier()


class TestDefaultRules:
    """Test cases for the built-in rule tables."""

    def test_default_labels_in_order(self):
        """Test that the built-in labels keep their declared order."""
        rules = ClassificationRules.default()

        assert rules.labels == ["rejected", "interview", "offer", "applied", "next-phase"]
        assert len(rules) == len(DEFAULT_RULE_DATA)

    def test_default_priorities_follow_list_order(self):
        rules = ClassificationRules.default()

        assert [d.priority for d in rules] == [0, 1, 2, 3, 4]


class TestEmailClassifier:
    """Test cases for EmailClassifier."""

    def test_interview_invitation(self, classifier):
        """Test that an interview subject with an empty body is an interview."""
        result = classifier.classify("Subject: Interview invitation\n\n")

        assert result.label == "interview"
        assert result.score > 0
        assert result.success

    def test_no_matches_is_other(self, classifier):
        """Test that text with no pattern matches resolves to other."""
        result = classifier.classify("Subject: Lunch plans\n\nWant to grab lunch this Friday?")

        assert result.label == OTHER_LABEL
        assert result.score == 0
        assert result.success is False

    def test_empty_text(self, classifier):
        result = classifier.classify("")

        assert result.label == OTHER_LABEL
        assert result.score == 0
        assert not result.success

    def test_application_receipt(self, classifier):
        """Test a typical application confirmation email."""
        text = (
            "Subject: Application received\n\n"
            "Thank you for applying. We have received your application."
        )

        result = classifier.classify(text)

        assert result.label == "applied"
        assert result.score == pytest.approx(0.72)
        assert result.success

    def test_offer(self, classifier):
        text = (
            "Subject: Congratulations!\n\n"
            "We are pleased to offer you the position. Your start date is March 1."
        )

        result = classifier.classify(text)

        assert result.label == "offer"

    def test_score_is_capped(self):
        """Test that scores never exceed 1.0."""
        rules = ClassificationRules.from_dict(
            [{"label": "applied", "weight": 1.0, "subject_patterns": ["thanks"]}]
        )

        result = EmailClassifier(rules).classify("thanks")

        assert result.score == 1.0

    def test_low_score_is_not_success(self):
        """Test that a score at or below the floor is not a success."""
        rules = ClassificationRules.from_dict(
            [
                {
                    "label": "applied",
                    "weight": 0.5,
                    "subject_patterns": [],
                    "body_patterns": ["thanks"] + [f"never{i}" for i in range(9)],
                }
            ]
        )

        result = EmailClassifier(rules).classify("thanks")

        assert result.label == "applied"
        assert result.score == pytest.approx(0.05)
        assert not result.success

    def test_tie_resolves_to_earlier_label(self):
        """Test that equal scores resolve to the earlier definition."""
        rules = ClassificationRules.from_dict(
            [
                {"label": "first", "weight": 0.5, "body_patterns": ["hello"]},
                {"label": "second", "weight": 0.5, "body_patterns": ["hello"]},
            ]
        )

        result = EmailClassifier(rules).classify("hello world")

        assert result.label == "first"
        assert result.score == 0.5

    def test_tie_uses_explicit_priority(self):
        """Test that declared priority wins over list position."""
        rules = ClassificationRules.from_dict(
            [
                {"label": "second", "weight": 0.5, "priority": 2, "body_patterns": ["hello"]},
                {"label": "first", "weight": 0.5, "priority": 1, "body_patterns": ["hello"]},
            ]
        )

        result = EmailClassifier(rules).classify("hello world")

        assert result.label == "first"

    def test_subject_patterns_count_double(self):
        """Test the subject pattern weighting."""
        rules = ClassificationRules.from_dict(
            [
                {
                    "label": "interview",
                    "weight": 1.0,
                    "subject_patterns": ["interview"],
                    "body_patterns": ["calendly", "zoom", "teams"],
                }
            ]
        )

        result = EmailClassifier(rules).classify("interview")

        assert result.score == pytest.approx(0.5)


class TestClassificationRules:
    """Test cases for rule loading and validation."""

    def test_from_dict_mapping(self):
        rules = ClassificationRules.from_dict(
            {"labels": [{"label": "Applied", "weight": 0.8, "subject_patterns": ["applied"]}]}
        )

        assert rules.labels == ["applied"]

    def test_empty_rules(self):
        with pytest.raises(ConfigurationError):
            ClassificationRules.from_dict([])

    def test_missing_weight(self):
        with pytest.raises(ConfigurationError):
            ClassificationRules.from_dict([{"label": "applied"}])

    def test_invalid_weight(self):
        with pytest.raises(ConfigurationError):
            ClassificationRules.from_dict([{"label": "applied", "weight": 1.5}])

    def test_invalid_pattern(self):
        with pytest.raises(ConfigurationError):
            ClassificationRules.from_dict(
                [{"label": "applied", "weight": 0.8, "subject_patterns": ["("]}]
            )

    def test_duplicate_labels(self):
        with pytest.raises(ConfigurationError):
            ClassificationRules.from_dict(
                [{"label": "applied", "weight": 0.8}, {"label": "Applied", "weight": 0.5}]
            )

    def test_from_yaml(self, tmp_path):
        """Test loading rules from a YAML file."""
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text(
            """
labels:
  - label: rejected
    weight: 0.9
    priority: 2
    subject_patterns:
      - unfortunately
  - label: interview
    weight: 0.85
    priority: 1
    body_patterns:
      - schedule.*interview
"""
        )

        rules = ClassificationRules.from_yaml(str(rules_file))

        assert rules.labels == ["interview", "rejected"]
        result = EmailClassifier(rules).classify("Let's schedule an interview")
        assert result.label == "interview"

    def test_from_yaml_missing_file(self, tmp_path):
        """Test that an unreadable rules file is a configuration error."""
        with pytest.raises(ConfigurationError, match="Cannot load classification rules"):
            ClassificationRules.from_yaml(str(tmp_path / "missing.yaml"))

    def test_from_yaml_malformed(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("labels: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ClassificationRules.from_yaml(str(rules_file))
