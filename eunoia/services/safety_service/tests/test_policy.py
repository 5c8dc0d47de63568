"""Tests for InterventionPolicy."""
import pytest

from eunoia.shared.models import CrisisCategory
from eunoia.services.safety_service.policy import (
    CrisisResource,
    DEFAULT_RESOURCES,
    InterventionPolicy,
)
from eunoia.services.safety_service.scanner import CrisisScanner, ScanResult


@pytest.fixture
def policy():
    return InterventionPolicy()


@pytest.fixture
def scanner():
    return CrisisScanner()


class TestTrigger:

    def test_no_match_does_not_trigger(self, policy):
        decision = policy.decide(ScanResult())

        assert decision.should_trigger is False
        assert decision.recommended_resources == ()

    @pytest.mark.parametrize("category", list(CrisisCategory))
    def test_any_single_category_triggers(self, policy, category):
        result = ScanResult(
            matched_categories=frozenset({category}),
            matched_phrases=("x",),
            score=5.0,
        )

        assert policy.decide(result).should_trigger is True

    def test_score_above_threshold_triggers_without_match(self, policy):
        decision = policy.decide(ScanResult(score=30.5))

        assert decision.should_trigger is True
        assert decision.matched_categories == frozenset()

    def test_score_at_threshold_does_not_trigger(self, policy):
        assert policy.decide(ScanResult(score=30.0)).should_trigger is False

    def test_custom_threshold(self):
        policy = InterventionPolicy(score_threshold=80.0)

        assert policy.decide(ScanResult(score=50.0)).should_trigger is False
        assert policy.decide(ScanResult(score=81.0)).should_trigger is True


class TestResources:

    def test_hopelessness_scenario_resources(self, policy, scanner):
        decision = policy.decide(scanner.scan("I feel hopeless and trapped, no way out"))

        assert decision.should_trigger is True
        assert CrisisCategory.HOPELESSNESS in decision.matched_categories
        targets = [r.target for r in decision.recommended_resources]
        assert "988" in targets
        assert "911" in targets

    def test_default_triple(self):
        assert [r.action for r in DEFAULT_RESOURCES] == ["call", "call", "link"]
        assert DEFAULT_RESOURCES[0].target == "988"
        assert DEFAULT_RESOURCES[1].target == "911"
        assert DEFAULT_RESOURCES[2].target.startswith("https://")

    def test_resources_do_not_vary_by_category(self, policy, scanner):
        abuse = policy.decide(scanner.scan("he keeps threatening me"))
        suicidal = policy.decide(scanner.scan("I want to end my life"))

        assert abuse.recommended_resources == suicidal.recommended_resources

    def test_custom_resources(self, scanner):
        resources = [CrisisResource("Samaritans", "call", "116123")]
        policy = InterventionPolicy(resources=resources)

        decision = policy.decide(scanner.scan("I want to kill myself"))

        assert decision.recommended_resources == tuple(resources)


class TestDecisionShape:

    def test_categories_copied_through(self, policy, scanner):
        result = scanner.scan("I took all the pills")
        decision = policy.decide(result)

        assert decision.matched_categories == result.matched_categories
        assert decision.score == result.score

    def test_to_dict(self, policy, scanner):
        data = policy.decide(scanner.scan("I want to kill myself")).to_dict()

        assert data["should_trigger"] is True
        assert data["matched_categories"] == ["suicidal_ideation"]
        assert data["recommended_resources"][0] == {
            "label": "988 Suicide & Crisis Lifeline",
            "action": "call",
            "target": "988",
        }

    def test_fail_closed(self, policy):
        decision = policy.fail_closed()

        assert decision.should_trigger is True
        assert decision.recommended_resources == DEFAULT_RESOURCES
