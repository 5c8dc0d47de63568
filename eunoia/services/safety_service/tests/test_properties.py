"""Property tests for scanner and policy: ordering, case, totality."""
import random

import pytest

from eunoia.shared.models import CrisisCategory
from eunoia.services.safety_service.catalog import KeywordCatalog
from eunoia.services.safety_service.policy import InterventionDecision, InterventionPolicy
from eunoia.services.safety_service.scanner import CrisisScanner, ScanResult


SAMPLE_TEXTS = [
    "",
    "I had a tough day at work but I'm managing",
    "I want to kill myself",
    "I feel hopeless and trapped, no way out",
    "I'm going to end it tonight",
    "I have a meeting tonight",
    "My partner keeps threatening me and I'm hearing voices",
    "took too many pills, can't stop drinking",
]

# Single-token phrases that always count when present. Multi-word phrases
# can dilute match density, and imminent_danger phrases may be gated out.
SINGLE_WORD_PHRASES = sorted({
    phrase
    for category, phrases in KeywordCatalog.default().lookup().items()
    if category is not CrisisCategory.IMMINENT_DANGER
    for phrase in phrases
    if " " not in phrase
})


@pytest.fixture(scope="module")
def scanner():
    return CrisisScanner()


@pytest.fixture(scope="module")
def policy():
    return InterventionPolicy()


class TestMonotonicity:
    """Appending matching phrases never removes a match or lowers the score."""

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_categories_never_removed(self, scanner, text):
        before = scanner.scan(text)
        rng = random.Random(7)

        extended = text
        for _ in range(5):
            category, phrases = rng.choice(KeywordCatalog.default().iter_sorted())
            extended = f"{extended} {rng.choice(phrases)}"
            after = scanner.scan(extended)
            assert before.matched_categories <= after.matched_categories
            before = after

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_score_never_decreases_for_single_word_phrases(self, scanner, text):
        rng = random.Random(11)
        previous = scanner.scan(text)

        extended = text
        for _ in range(10):
            # A phrase already present adds a word without adding a match
            fresh = [p for p in SINGLE_WORD_PHRASES if p not in extended.lower()]
            extended = f"{extended} {rng.choice(fresh)}"
            current = scanner.scan(extended)
            assert current.score >= previous.score
            previous = current


class TestCaseInsensitivity:

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_upper_lower_identical(self, scanner, text):
        original = scanner.scan(text)

        assert scanner.scan(text.upper()) == original
        assert scanner.scan(text.lower()) == original


class TestEmptyInput:

    def test_empty_scan_and_decision(self, scanner, policy):
        result = scanner.scan("")

        assert result == ScanResult(
            matched_categories=frozenset(),
            matched_phrases=(),
            score=0.0,
            catalog_version=scanner.catalog.version,
        )
        assert policy.decide(result).should_trigger is False


class TestSingleHighRiskMatch:

    def test_kill_myself_triggers(self, scanner, policy):
        result = scanner.scan("I want to kill myself")

        assert CrisisCategory.SUICIDAL_IDEATION in result.matched_categories
        assert policy.decide(result).should_trigger is True


class TestIdempotence:

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_repeat_scan_is_identical(self, scanner, text):
        first = scanner.scan(text)
        second = scanner.scan(text)

        assert first == second
        assert repr(first) == repr(second)
        assert first.to_dict() == second.to_dict()


class TestTotality:
    """Random Unicode up to 10,000 characters never breaks scan/decide."""

    @staticmethod
    def _random_text(rng: random.Random) -> str:
        length = rng.randint(0, 10_000)
        chars = [chr(rng.randint(0, 0x10FFFF)) for _ in range(length)]
        # Splice in a catalog phrase now and then so matches happen too
        if chars and rng.random() < 0.5:
            _, phrases = rng.choice(KeywordCatalog.default().iter_sorted())
            chars.insert(rng.randrange(len(chars)), f" {rng.choice(phrases).upper()} ")
        return "".join(chars)

    def test_fuzz(self, scanner, policy):
        rng = random.Random(20261019)

        for _ in range(40):
            text = self._random_text(rng)
            result = scanner.scan(text)
            decision = policy.decide(result)

            assert isinstance(result, ScanResult)
            assert isinstance(decision, InterventionDecision)
            assert 0.0 <= result.score <= 100.0
            assert decision.should_trigger == bool(result.matched_categories)
            assert len(result.matched_phrases) >= len(result.matched_categories)

    @pytest.mark.parametrize("text", [
        "\x00\x01\x02",
        "\ud800 lone surrogate",
        "死にたい",
        "🔪🔫💊",
        "a" * 10_000,
        "kill myself " * 800,
    ])
    def test_adversarial_inputs(self, scanner, policy, text):
        result = scanner.scan(text)

        assert 0.0 <= result.score <= 100.0
        policy.decide(result)
