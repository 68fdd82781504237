"""Rule-based classification of job application emails."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Pattern, Tuple

import yaml

from .errors import ConfigurationError
from .models import ClassificationResult

logger = logging.getLogger(__name__)

OTHER_LABEL = "other"
SUCCESS_FLOOR = 0.05

# Subject and body pattern tables per label. List order is also the tie-break
# priority used when no explicit priority is given.
DEFAULT_RULE_DATA: List[Dict[str, Any]] = [
    {
        "label": "rejected",
        "weight": 0.9,
        "subject_patterns": [
            r"unfortunately",
            r"regret to inform",
            r"not (been )?selected",
            r"unable to (move|proceed|offer)",
            r"position (has been |was )?filled",
            r"not moving forward",
            r"application.*update",
        ],
        "body_patterns": [
            r"we (will not|won't) be (moving|proceeding)",
            r"after careful (consideration|review)",
            r"decided (not )?to (move|proceed|go) (forward )?with other",
            r"not (been )?selected",
            r"regret to inform",
            r"unfortunately",
            r"wish you (the )?best",
            r"other candidates",
            r"position has been filled",
            r"we('ve| have) decided to (pursue|move forward with) other",
        ],
    },
    {
        "label": "interview",
        "weight": 0.85,
        "subject_patterns": [
            r"interview",
            r"schedule.*call",
            r"phone screen",
            r"coding (challenge|assessment|test)",
            r"technical (screen|interview|assessment)",
            r"meet.*team",
            r"availability",
        ],
        "body_patterns": [
            r"schedule.*interview",
            r"like to (invite|schedule)",
            r"phone (screen|call|interview)",
            r"video (call|interview)",
            r"technical (assessment|screen|interview|challenge)",
            r"coding (challenge|test|assessment)",
            r"available.*for.*call",
            r"would you be available",
            r"calendly",
            r"book.*time",
            r"meet.*team",
            r"next (round|step|stage)",
        ],
    },
    {
        "label": "offer",
        "weight": 0.95,
        "subject_patterns": [
            r"offer (letter)?",
            r"congratulations",
            r"welcome (to|aboard)",
            r"job offer",
        ],
        "body_patterns": [
            r"pleased to (offer|extend)",
            r"offer (of employment|letter)",
            r"congratulations",
            r"welcome (to the team|aboard)",
            r"start date",
            r"compensation",
            r"annual salary",
            r"we('d| would) like to offer",
        ],
    },
    {
        "label": "applied",
        "weight": 0.8,
        "subject_patterns": [
            r"application (received|confirmed|submitted)",
            r"thank(s| you) for (applying|your (application|interest))",
            r"we('ve| have) received your",
            r"confirmation",
        ],
        "body_patterns": [
            r"thank(s| you) for (applying|your (application|interest|submission))",
            r"application (has been |was )?(received|submitted)",
            r"we('ve| have) received your (application|resume)",
            r"reviewing (your |all )?(application|candidate)",
            r"will (review|be in touch)",
            r"application.*under review",
        ],
    },
    {
        "label": "next-phase",
        "weight": 0.85,
        "subject_patterns": [
            r"next (step|phase|stage|round)",
            r"moving forward",
            r"advancement",
        ],
        "body_patterns": [
            r"moving (you )?forward",
            r"next (step|phase|stage|round)",
            r"pleased to (inform|let you know)",
            r"advanced to",
            r"progressed to",
            r"like to (move|advance)",
        ],
    },
]


def _compile(patterns: Iterable[str], label: str) -> Tuple[Pattern, ...]:
    try:
        return tuple(re.compile(p, re.IGNORECASE) for p in patterns)
    except re.error as e:
        raise ConfigurationError(f"Invalid pattern for label '{label}': {e}") from e


@dataclass(frozen=True)
class LabelDefinition:
    """Weighted pattern sets for one lifecycle label."""

    label: str
    weight: float
    priority: int
    subject_patterns: Tuple[Pattern, ...]
    body_patterns: Tuple[Pattern, ...]

    @property
    def pattern_count(self) -> int:
        return len(self.subject_patterns) + len(self.body_patterns)

    def score(self, text: str) -> float:
        """Score text against this definition.

        Subject patterns count double. Every pattern is searched in the full text.
        """
        if not self.pattern_count:
            return 0.0
        match_count = 2 * sum(1 for p in self.subject_patterns if p.search(text))
        match_count += sum(1 for p in self.body_patterns if p.search(text))
        return min(1.0, (match_count / self.pattern_count) * self.weight)


class ClassificationRules:
    """Immutable set of label definitions ordered by tie-break priority."""

    def __init__(self, definitions: Iterable[LabelDefinition]):
        self._definitions = tuple(sorted(definitions, key=lambda d: d.priority))
        labels = [d.label for d in self._definitions]
        if len(labels) != len(set(labels)):
            raise ConfigurationError(f"Duplicate labels in classification rules: {labels}")
        for definition in self._definitions:
            if not 0 < definition.weight <= 1:
                raise ConfigurationError(
                    f"Weight for label '{definition.label}' must be in (0, 1], "
                    f"got {definition.weight}"
                )

    def __iter__(self):
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def labels(self) -> List[str]:
        return [d.label for d in self._definitions]

    @classmethod
    def from_dict(cls, data: Any) -> "ClassificationRules":
        """Build rules from a list of label entries or a ``{"labels": [...]}`` mapping."""
        entries = data.get("labels", []) if isinstance(data, dict) else data
        if not entries:
            raise ConfigurationError("Classification rules must define at least one label")

        definitions = []
        for index, entry in enumerate(entries):
            try:
                label = str(entry["label"]).lower()
                weight = float(entry["weight"])
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid classification rule #{index}: {e}") from e
            definitions.append(
                LabelDefinition(
                    label=label,
                    weight=weight,
                    priority=int(entry.get("priority", index)),
                    subject_patterns=_compile(entry.get("subject_patterns", []), label),
                    body_patterns=_compile(entry.get("body_patterns", []), label),
                )
            )
        return cls(definitions)

    @classmethod
    def from_yaml(cls, path: str) -> "ClassificationRules":
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load classification rules from {path}: {e}") from e
        logger.info(f"Loaded classification rules from {path}")
        return cls.from_dict(data or {})

    @classmethod
    def default(cls) -> "ClassificationRules":
        return cls.from_dict(DEFAULT_RULE_DATA)


class EmailClassifier:
    """Assigns a lifecycle label and confidence to normalized email text."""

    def __init__(self, rules: ClassificationRules = None):
        self.rules = rules or ClassificationRules.default()

    def classify(self, text: str) -> ClassificationResult:
        best_label = OTHER_LABEL
        best_score = 0.0

        for definition in self.rules:
            score = definition.score(text)
            if score > best_score:
                best_score = score
                best_label = definition.label

        return ClassificationResult(
            label=best_label, score=best_score, success=best_score > SUCCESS_FLOOR
        )
