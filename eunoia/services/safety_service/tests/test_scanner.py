"""Tests for CrisisScanner - safety-critical code.

Covers category matching, the imminent-danger anchor rule and the
severity score formula.
"""
import pytest

from eunoia.shared.models import CrisisCategory
from eunoia.services.safety_service.catalog import KeywordCatalog
from eunoia.services.safety_service.config import ScoringConfig
from eunoia.services.safety_service.policy import InterventionPolicy
from eunoia.services.safety_service.scanner import CrisisScanner, ScanResult


@pytest.fixture
def scanner():
    """Create a CrisisScanner over the built-in catalog."""
    return CrisisScanner()


class TestSafeMessage:
    """Messages with no crisis language."""

    def test_everyday_message(self, scanner):
        result = scanner.scan("I had a tough day at work but I'm managing")

        assert result.matched_categories == frozenset()
        assert result.matched_phrases == ()
        assert result.score == 0.0

    def test_empty_message(self, scanner):
        result = scanner.scan("")

        assert result.matched_categories == frozenset()
        assert result.matched_phrases == ()
        assert result.score == 0.0

    def test_whitespace_only(self, scanner):
        assert scanner.scan("   \n\t ").score == 0.0

    def test_none_is_treated_as_empty(self, scanner):
        assert scanner.scan(None) == scanner.scan("")


class TestCategoryMatching:

    def test_suicidal_ideation(self, scanner):
        result = scanner.scan("I want to kill myself")

        assert result.matched_categories == frozenset({CrisisCategory.SUICIDAL_IDEATION})
        assert result.matched_phrases == ("kill myself",)

    def test_hopelessness_scenario(self, scanner):
        result = scanner.scan("I feel hopeless and trapped, no way out")

        assert CrisisCategory.HOPELESSNESS in result.matched_categories
        assert CrisisCategory.MENTAL_HEALTH_CRISIS in result.matched_categories
        # "hopeless" is listed under both categories and counted twice
        assert result.matched_phrases == ("hopeless", "hopeless", "no way out", "trapped")

    def test_overdose_and_method(self, scanner):
        result = scanner.scan("I took all the pills")

        assert result.matched_categories == frozenset({
            CrisisCategory.OVERDOSE_RISK,
            CrisisCategory.METHOD_MENTIONED,
        })
        assert result.matched_phrases == ("all the pills", "pills")

    def test_substring_matching_inside_words(self, scanner):
        """Containment is not tokenized: 'cutting' matches inside 'undercutting'."""
        result = scanner.scan("they keep undercutting me")

        assert CrisisCategory.SELF_HARM in result.matched_categories

    def test_punctuation_adjacency(self, scanner):
        result = scanner.scan("Honestly...kill myself!!!")

        assert CrisisCategory.SUICIDAL_IDEATION in result.matched_categories

    def test_categories_are_deduplicated(self, scanner):
        result = scanner.scan("self harm, self-harm, cutting myself")

        assert result.matched_categories == frozenset({CrisisCategory.SELF_HARM})
        assert len(result.matched_phrases) == 4  # incl. "cutting"

    def test_abuse_disclosure(self, scanner):
        result = scanner.scan("My partner is threatening me and I am afraid for my safety")

        assert result.matched_categories == frozenset({CrisisCategory.ABUSE_OR_VIOLENCE})

    def test_substance_crisis(self, scanner):
        result = scanner.scan("I can't stop drinking")

        assert result.matched_categories == frozenset({CrisisCategory.SUBSTANCE_CRISIS})


class TestImminentDangerGating:
    """imminent_danger needs an anchor term ("die", "end", "hurt")."""

    def test_scheduling_language_is_not_imminent(self, scanner):
        result = scanner.scan("I have a meeting tonight")

        assert CrisisCategory.IMMINENT_DANGER not in result.matched_categories
        assert result.matched_phrases == ()

    def test_anchor_makes_it_imminent(self, scanner):
        result = scanner.scan("I'm going to end it tonight")

        assert CrisisCategory.IMMINENT_DANGER in result.matched_categories
        assert "tonight" in result.matched_phrases

    def test_hurt_anchor(self, scanner):
        result = scanner.scan("I am about to hurt someone")

        assert CrisisCategory.IMMINENT_DANGER in result.matched_categories

    def test_anchor_without_imminent_phrase(self, scanner):
        result = scanner.scan("the end of the movie was sad")

        assert CrisisCategory.IMMINENT_DANGER not in result.matched_categories

    def test_anchor_is_substring_match(self, scanner):
        """'end' inside 'weekend' still anchors; over-triggering is accepted."""
        result = scanner.scan("this weekend, right now")

        assert CrisisCategory.IMMINENT_DANGER in result.matched_categories

    def test_gated_phrases_not_recorded(self, scanner):
        result = scanner.scan("ready to go right now")

        assert result.matched_phrases == ()


class TestDistressAndIsolationLanguage:
    """Indirect phrasing still reaches a category and triggers."""

    @pytest.mark.parametrize("text, category", [
        ("I'm just a burden to everyone", CrisisCategory.SUICIDAL_IDEATION),
        ("I can't take it anymore", CrisisCategory.MENTAL_HEALTH_CRISIS),
        ("I'm at my limit and I want to give up", CrisisCategory.HOPELESSNESS),
        ("I feel worthless and all alone", CrisisCategory.HOPELESSNESS),
        ("I'm scared of him when he drinks", CrisisCategory.ABUSE_OR_VIOLENCE),
        ("I saved up my pain medication", CrisisCategory.OVERDOSE_RISK),
        ("This is goodbye, I want it to end today", CrisisCategory.IMMINENT_DANGER),
    ])
    def test_triggers(self, scanner, text, category):
        result = scanner.scan(text)

        assert category in result.matched_categories
        assert InterventionPolicy().decide(result).should_trigger is True


class TestScore:

    def test_density_plus_high_risk_boost(self, scanner):
        # 1 match / 5 words = 20, + 25 boost for suicidal ideation
        assert scanner.scan("I want to kill myself").score == pytest.approx(45.0)

    def test_density_only(self, scanner):
        # 4 matches / 8 words, no high-risk categories
        assert scanner.scan("I feel hopeless and trapped, no way out").score == pytest.approx(50.0)

    def test_each_high_risk_phrase_boosts(self, scanner):
        # 2 matches / 5 words = 40, + 2 * 25
        assert scanner.scan("I took all the pills").score == pytest.approx(90.0)

    def test_imminent_density(self, scanner):
        assert scanner.scan("I'm going to end it tonight").score == pytest.approx(100.0 / 6)

    def test_capped_at_100(self, scanner):
        result = scanner.scan("suicide overdose gun knife")

        assert result.score == 100.0

    def test_density_capped_when_matches_exceed_words(self, scanner):
        # one token, two phrases ("hopeless" in two categories)
        assert scanner.scan("hopeless").score == 100.0

    def test_custom_boost(self):
        scanner = CrisisScanner(scoring=ScoringConfig(high_risk_boost=0.0))

        assert scanner.scan("I want to kill myself").score == pytest.approx(20.0)


class TestScanResult:

    def test_rejects_out_of_range_score(self):
        with pytest.raises(ValueError):
            ScanResult(score=101.0)

    def test_to_dict_hides_phrases(self, scanner):
        data = scanner.scan("I feel hopeless and trapped, no way out").to_dict()

        assert data["matched_categories"] == ["mental_health_crisis", "hopelessness"]
        assert data["match_count"] == 4
        assert "matched_phrases" not in data
        assert data["catalog_version"]

    def test_uses_injected_catalog(self):
        catalog = KeywordCatalog({"self_harm": ["scratch myself"]}, version="test")
        scanner = CrisisScanner(catalog=catalog)

        result = scanner.scan("I scratch myself sometimes")
        assert result.matched_categories == frozenset({CrisisCategory.SELF_HARM})
        assert result.catalog_version == "test"
        assert scanner.scan("I want to kill myself").matched_categories == frozenset()

    def test_raw_text_not_logged(self, scanner, caplog):
        secret = "I want to kill myself tonight"
        with caplog.at_level("INFO"):
            scanner.scan(secret)

        assert caplog.records
        for record in caplog.records:
            assert secret not in record.getMessage()
            assert secret not in str(record.__dict__)
