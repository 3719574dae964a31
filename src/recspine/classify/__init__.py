"""Deterministic category classification and filing hints."""

from recspine.classify.classifier import CategoryClassifier, RuleVerdict
from recspine.classify.filing import FilingHint, filing_hint
from recspine.classify.rules import RULES, Rule, RuleInputs

__all__ = [
    "CategoryClassifier",
    "RuleVerdict",
    "FilingHint",
    "filing_hint",
    "RULES",
    "Rule",
    "RuleInputs",
]
