"""TriggerEvaluator - gates pipeline runs on incoming events."""

import logging
from typing import Iterable, Optional

from .models import EventKind, TriggerEvent, TriggerRule

logger = logging.getLogger(__name__)

DEFAULT_TARGET_BRANCH = "main"


def default_rules(target_branch: str = DEFAULT_TARGET_BRANCH) -> tuple[TriggerRule, ...]:
    """Admit every pull request, and pushes to the target branch only."""
    return (
        TriggerRule(kind=EventKind.PULL_REQUEST),
        TriggerRule(kind=EventKind.PUSH, branches=frozenset({target_branch})),
    )


class TriggerEvaluator:
    """Decides whether an event schedules a pipeline run.

    Rules are immutable and keyed by event kind. An event whose kind has
    no rule (including unknown kinds) is rejected rather than treated as
    an error, so a malformed event simply does not start the pipeline.

    Example:
        evaluator = TriggerEvaluator()
        evaluator.should_run(TriggerEvent(kind="push", branch="main"))  # True
    """

    def __init__(self, rules: Optional[Iterable[TriggerRule]] = None):
        rules = tuple(rules) if rules is not None else default_rules()
        self._rules: dict[EventKind, TriggerRule] = {rule.kind: rule for rule in rules}

    @property
    def rules(self) -> tuple[TriggerRule, ...]:
        return tuple(self._rules.values())

    def should_run(self, event: TriggerEvent) -> bool:
        kind = event.event_kind
        if kind is None:
            logger.info("Rejecting event with unknown kind '%s'", event.kind)
            return False

        rule = self._rules.get(kind)
        if rule is None:
            logger.info("No trigger rule for '%s' events", kind.value)
            return False

        admitted = rule.admits(event)
        logger.info(
            "%s %s event (branch=%s)",
            "Admitting" if admitted else "Rejecting",
            kind.value,
            event.branch,
        )
        return admitted
