"""Trigger evaluation for pipeline runs.

Decides from an incoming repository event whether a pipeline run is
scheduled. Rejection is a normal outcome, not an error.
"""

from .evaluator import TriggerEvaluator, default_rules
from .models import EventKind, TriggerEvent, TriggerRule

__all__ = [
    "TriggerEvaluator",
    "default_rules",
    "EventKind",
    "TriggerEvent",
    "TriggerRule",
]
