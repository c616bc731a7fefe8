"""Unit tests for trigger evaluation."""

import pytest

from src.trigger import EventKind, TriggerEvaluator, TriggerEvent, TriggerRule, default_rules


class TestTriggerEvent:
    def test_event_kind_parses_known_kinds(self):
        assert TriggerEvent(kind="push").event_kind is EventKind.PUSH
        assert TriggerEvent(kind="pull_request").event_kind is EventKind.PULL_REQUEST

    def test_unknown_kind_has_no_event_kind(self):
        assert TriggerEvent(kind="release").event_kind is None

    def test_from_dict_record(self):
        event = TriggerEvent.from_dict({"kind": "push", "branch": "main"})
        assert event == TriggerEvent(kind="push", branch="main")

    def test_from_dict_strips_ref_prefix(self):
        event = TriggerEvent.from_dict({"event_name": "push", "ref": "refs/heads/main"})
        assert event.kind == "push"
        assert event.branch == "main"

    def test_from_dict_without_branch(self):
        event = TriggerEvent.from_dict({"kind": "pull_request"})
        assert event.branch is None

    def test_roundtrip(self):
        event = TriggerEvent(kind="push", branch="main")
        assert TriggerEvent.from_dict(event.to_dict()) == event


class TestTriggerRule:
    def test_rule_without_branches_admits_any(self):
        rule = TriggerRule(kind=EventKind.PULL_REQUEST)
        assert rule.admits(TriggerEvent(kind="pull_request", branch="anything"))
        assert rule.admits(TriggerEvent(kind="pull_request"))

    def test_rule_with_branches(self):
        rule = TriggerRule(kind=EventKind.PUSH, branches=frozenset({"main", "release"}))
        assert rule.admits(TriggerEvent(kind="push", branch="release"))
        assert not rule.admits(TriggerEvent(kind="push", branch="dev"))
        assert not rule.admits(TriggerEvent(kind="push"))


class TestTriggerEvaluator:
    @pytest.mark.parametrize("branch", [None, "main", "feature-x", "refs/heads/other"])
    def test_pull_requests_always_admitted(self, branch):
        evaluator = TriggerEvaluator()
        assert evaluator.should_run(TriggerEvent(kind="pull_request", branch=branch)) is True

    def test_push_to_target_branch_admitted(self):
        evaluator = TriggerEvaluator()
        assert evaluator.should_run(TriggerEvent(kind="push", branch="main")) is True

    def test_push_ref_to_target_branch_admitted(self):
        evaluator = TriggerEvaluator()
        assert evaluator.should_run(TriggerEvent(kind="push", branch="refs/heads/main")) is True

    @pytest.mark.parametrize("branch", ["feature-x", "master", "mainline", None])
    def test_push_to_other_branch_rejected(self, branch):
        evaluator = TriggerEvaluator()
        assert evaluator.should_run(TriggerEvent(kind="push", branch=branch)) is False

    def test_configured_target_branch(self):
        evaluator = TriggerEvaluator(default_rules("master"))
        assert evaluator.should_run(TriggerEvent(kind="push", branch="master")) is True
        assert evaluator.should_run(TriggerEvent(kind="push", branch="main")) is False

    def test_unknown_kind_rejected_without_error(self):
        evaluator = TriggerEvaluator()
        assert evaluator.should_run(TriggerEvent(kind="tag", branch="main")) is False
        assert evaluator.should_run(TriggerEvent(kind="")) is False

    def test_kind_without_rule_rejected(self):
        evaluator = TriggerEvaluator([TriggerRule(kind=EventKind.PULL_REQUEST)])
        assert evaluator.should_run(TriggerEvent(kind="push", branch="main")) is False

    def test_rules_property(self):
        evaluator = TriggerEvaluator(default_rules("main"))
        kinds = {rule.kind for rule in evaluator.rules}
        assert kinds == {EventKind.PULL_REQUEST, EventKind.PUSH}
