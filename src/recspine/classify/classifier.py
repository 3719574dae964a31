"""
Category classifier: one operational bucket per recording.

Manifesto:
    Categorisation that grows as overlapping ad-hoc branches spread over
    several scripts puts the same recording in different buckets depending
    on which script saw it. This module runs a single ordered rule table
    (``recspine.classify.rules``) so that precedence is explicit and each
    rule can be tested on its own.

Architecture:
    ::

        classify(metadata, name_resolution)
          ├── RuleInputs (tracks absent fields)
          ├── first rule in RULES whose predicate holds
          ├── refine Coaching -> GamePlan / SAT (topic markers)
          └── ClassificationResult(category, rule_index, rule_name,
                                   no_show, missing_fields, refined_from)

Features:
    - Pure and deterministic: identical inputs give the identical category
      and rule index
    - Always terminates: missing fields make dependent conditions false
    - ``strict=True`` raises ClassificationIncompleteError instead
    - ``explain()`` reports every rule's verdict for audits

Examples:
    >>> from recspine.core.models import NameResolution, RecordingMetadata
    >>> classifier = CategoryClassifier()
    >>> result = classifier.classify(
    ...     RecordingMetadata(identifier=None, topic="Mic test"),
    ...     NameResolution(),
    ... )
    >>> result.category, result.rule_index
    (<Category.TRIVIAL: 'Trivial'>, 1)

Tags:
    classification, rule-engine, categorization, rec-spine
"""

from __future__ import annotations

from dataclasses import dataclass

from recspine.core.enums import Category
from recspine.core.errors import ClassificationIncompleteError
from recspine.core.logging import get_logger
from recspine.core.models import ClassificationResult, NameResolution, RecordingMetadata
from recspine.core.settings import ClassifierThresholds

from .rules import RULES, Rule, RuleInputs, has_marker

logger = get_logger(__name__)

# Rules whose Coaching outcome may be refined into a session type.
_REFINABLE_RULES = frozenset({5, 7})


@dataclass(frozen=True)
class RuleVerdict:
    """Outcome of one rule, evaluated in isolation."""

    index: int
    name: str
    category: Category
    fired: bool
    missing_fields: tuple[str, ...] = ()


class CategoryClassifier:
    """Applies the ordered rule table with configurable thresholds."""

    def __init__(self, thresholds: ClassifierThresholds | None = None):
        self.thresholds = thresholds or ClassifierThresholds()

    def classify(
        self,
        metadata: RecordingMetadata,
        name_resolution: NameResolution | None = None,
        *,
        strict: bool = False,
    ) -> ClassificationResult:
        """
        Assign a category.

        Args:
            metadata: Observation being classified
            name_resolution: Coach/student attribution; None counts as absent
            strict: Raise instead of degrading when a consulted field is absent

        Raises:
            ClassificationIncompleteError: Only when ``strict`` and a field
                consulted before the firing rule was absent
        """
        inputs = RuleInputs(metadata, name_resolution, self.thresholds)
        rule = self._first_match(inputs)
        missing = tuple(inputs.missing)

        if missing:
            if strict:
                raise ClassificationIncompleteError(list(missing)).with_context(
                    operation="classify", rule=rule.name
                )
            logger.warning(
                "classifier.incomplete",
                missing_fields=list(missing),
                rule=rule.name,
            )

        category, refined_from = self._refine(rule, metadata, name_resolution)

        result = ClassificationResult(
            category=category,
            rule_index=rule.index,
            rule_name=rule.name,
            no_show=rule.no_show,
            missing_fields=missing,
            refined_from=refined_from,
        )
        logger.debug(
            "classifier.rule_fired",
            rule_index=rule.index,
            rule=rule.name,
            category=category.value,
            no_show=rule.no_show,
        )
        return result

    def explain(
        self,
        metadata: RecordingMetadata,
        name_resolution: NameResolution | None = None,
    ) -> list[RuleVerdict]:
        """Every rule's verdict, in table order, ignoring precedence."""
        verdicts = []
        for rule in RULES:
            inputs = RuleInputs(metadata, name_resolution, self.thresholds)
            fired = bool(rule.predicate(inputs))
            verdicts.append(
                RuleVerdict(
                    index=rule.index,
                    name=rule.name,
                    category=rule.category,
                    fired=fired,
                    missing_fields=tuple(inputs.missing),
                )
            )
        return verdicts

    @staticmethod
    def _first_match(inputs: RuleInputs) -> Rule:
        for rule in RULES:
            if rule.predicate(inputs):
                return rule
        # The default rule always holds.
        raise AssertionError("rule table has no default")

    def _refine(
        self,
        rule: Rule,
        metadata: RecordingMetadata,
        name_resolution: NameResolution | None,
    ) -> tuple[Category, Category | None]:
        if rule.category is not Category.COACHING or rule.index not in _REFINABLE_RULES:
            return rule.category, None

        t = self.thresholds
        student_resolved = name_resolution is not None and name_resolution.student_resolved
        if student_resolved and has_marker(metadata.topic, t.game_plan_markers):
            return Category.GAME_PLAN, Category.COACHING
        if has_marker(metadata.topic, t.sat_markers):
            return Category.SAT, Category.COACHING
        return rule.category, None
