"""
Tests for the independent text layers: normalizer, pattern matcher,
stylistic analyzer, structure analyzer, omission detector.
"""

import pytest

from auditcore.matcher import match_patterns
from auditcore.normalizer import normalize_text, split_sentences
from auditcore.omissions import OmissionDetector, omission_risk
from auditcore.patterns import catalog
from auditcore.patterns.catalog import OmissionRule
from auditcore.structure import analyze_structure
from auditcore.stylistic import (
    StylisticAnalyzer,
    analyze_typography,
    style_risk,
    variance_risk,
)


# ============================================================
# NORMALIZER
# ============================================================

class TestNormalizer:
    def test_collapses_whitespace(self):
        assert normalize_text("a   b\t\tc\n\nd") == "a b c d"

    def test_strips_page_number_lines(self):
        text = "First paragraph.\n12\nPage 3 of 40\npage 4\nSecond paragraph."
        assert normalize_text(text) == "First paragraph. Second paragraph."

    def test_keeps_numbers_inside_sentences(self):
        assert normalize_text("We counted 12 bridges.") == "We counted 12 bridges."

    def test_crlf_line_endings(self):
        assert normalize_text("One.\r\n7\r\nTwo.") == "One. Two."

    def test_idempotent(self):
        raw = "  Intro \r\n\r\n 2 \n Body  text.\nPage 9\n"
        once = normalize_text(raw)
        assert normalize_text(once) == once

    def test_empty(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""

    def test_split_sentences_drops_unterminated_tail(self):
        assert split_sentences("One two. Three? Four") == ["One two.", "Three?"]


# ============================================================
# PATTERN MATCHER
# ============================================================

class TestMatcher:
    def test_counts_occurrences_per_rule(self):
        report = match_patterns("A tapestry of ideas and a tapestry of voices.", catalog)
        hit = next(h for h in report.hits if h.rule.phrase == "tapestry of")
        assert hit.occurrence_count == 2
        assert hit.points == pytest.approx(6.0)

    def test_normalized_per_thousand_words(self):
        text = "We delve into rivers. " + "word " * 96
        report = match_patterns(text, catalog)
        assert report.word_count == 100
        assert report.total_weighted_points == pytest.approx(2.5)
        assert report.normalized_score == pytest.approx(25.0)
        assert report.risk(scale=2) == pytest.approx(50.0)

    def test_risk_capped_at_100(self):
        report = match_patterns("tapestry of tapestry of", catalog)
        assert report.risk() == 100.0

    def test_no_hits(self, clean_paper):
        report = match_patterns(clean_paper, catalog)
        assert report.hits == []
        assert report.risk() == 0.0

    def test_filipino_phrase(self):
        report = match_patterns("Bukod dito, napag-alaman na tumaas ang ani.", catalog)
        phrases = {h.rule.phrase for h in report.hits}
        assert "bukod dito," in phrases
        assert "napag-alaman na" in phrases

    def test_every_matching_row_scores(self):
        text = "ang pag-aaral na ito ay naglalayong suriin ang epekto ng programa"
        report = match_patterns(text, catalog)
        assert report.total_weighted_points == pytest.approx(2.4)
        assert {h.category for h in report.hits} == {"intro_ph", "layunin_ph"}

    def test_repeated_phrase_weights_add_up(self):
        report = match_patterns("Results should be interpreted with caution.", catalog)
        assert report.total_weighted_points == pytest.approx(2.7)

    def test_empty_text(self):
        report = match_patterns("", catalog)
        assert report.word_count == 0
        assert report.hits == []


# ============================================================
# TYPOGRAPHY + STYLE
# ============================================================

class TestTypography:
    @pytest.mark.parametrize("std_dev,expected", [
        (0, 100), (3.99, 100), (4, 80), (5.9, 80), (6, 50),
        (7.5, 50), (8, 20), (9.99, 20), (10, 0), (25, 0),
    ])
    def test_variance_ladder(self, std_dev, expected):
        assert variance_risk(std_dev) == expected

    def test_uniform_sentences_max_risk(self):
        text = "The cat sat down. The dog ran off. The bird flew up."
        report = analyze_typography(text)
        assert report.sentence_count == 3
        assert report.std_dev == 0
        assert report.risk_score == 100

    def test_varied_sentences_zero_risk(self, clean_paper):
        report = analyze_typography(clean_paper)
        assert report.std_dev >= 10
        assert report.risk_score == 0

    def test_no_sentences(self):
        assert analyze_typography("no terminal punctuation").risk_score == 0


class TestStyle:
    analyzer = StylisticAnalyzer(catalog.style)

    def test_passive_voice_ladder(self):
        text = "The samples were collected. The forms were signed. Rain fell."
        report = self.analyzer.analyze(text)
        assert report.passive_voice_count == 2
        assert report.passive_voice_pct > 40
        assert report.risk_score >= 30

    def test_linking_particle(self):
        text = "Ang bata ay masaya. Ang araw ay mainit. Umuulan."
        report = self.analyzer.analyze(text)
        assert report.linking_particle_pct > 30

    def test_hedging_and_jargon_density(self):
        text = "This research may perhaps suggest data findings."
        report = self.analyzer.analyze(text)
        assert report.hedging_density > 10
        assert report.jargon_density > 50

    def test_risk_is_additive_and_capped(self):
        report = self.analyzer.analyze(
            "The data was analyzed. The study ay may be research."
        )
        assert report.risk_score == style_risk(report)
        assert 0 <= report.risk_score <= 100

    def test_clean_text_zero(self, clean_paper):
        assert self.analyzer.analyze(clean_paper).risk_score == 0

    def test_empty(self):
        assert self.analyzer.analyze("").risk_score == 0


# ============================================================
# STRUCTURE
# ============================================================

class TestStructure:
    sections = catalog.sections

    def test_full_ordered_skeleton(self, clean_paper):
        report = analyze_structure(clean_paper, self.sections)
        assert report.predictability_score == 100
        assert report.properly_ordered is True
        assert len(report.sections_detected) == 6

    def test_out_of_order(self):
        text = "Conclusion first. Then results. Methodology. Introduction last."
        report = analyze_structure(text, self.sections)
        assert report.predictability_score == 60
        assert report.properly_ordered is False

    def test_few_sections(self):
        report = analyze_structure("Introduction and discussion only.", self.sections)
        assert report.predictability_score == 30

    def test_no_sections(self):
        assert analyze_structure("Just prose.", self.sections).predictability_score == 0


# ============================================================
# OMISSIONS
# ============================================================

class TestOmissions:
    detector = OmissionDetector(catalog.omission_rules)

    def test_trigger_without_expectation(self):
        found = self.detector.detect("Forty participants walked the trail.")
        assert [o.id for o in found] == ["human_subjects"]
        assert found[0].trigger_found == "participants"
        assert found[0].label.startswith("Missing Ethical Board")

    def test_expectation_satisfies_rule(self):
        text = "Forty participants joined after the review board approved it."
        assert self.detector.detect(text) == []

    def test_expectation_matches_inflection(self):
        text = "The children consented with a guardian present."
        assert self.detector.detect(text) == []

    @pytest.mark.parametrize("text,rule_id,trigger", [
        ("We surveyed 200 teachers.", "data_privacy", "survey"),
        ("The surveys were stored.", "data_privacy", "survey"),
        ("Two datasets were merged.", "data_privacy", "dataset"),
        ("Experiments on humans.", "human_subjects", "human"),
    ])
    def test_trigger_matches_inflections(self, text, rule_id, trigger):
        found = {o.id: o.trigger_found for o in self.detector.detect(text)}
        assert found == {rule_id: trigger}

    def test_trigger_needs_word_start(self):
        assert self.detector.detect("The unsurveyed plots stayed dry.") == []

    def test_whole_word_trigger(self):
        # "tao" must not fire on "taon"
        assert self.detector.detect("Noong nakaraang taon umulan.") == []
        found = self.detector.detect("Maraming tao ang dumalo.")
        assert [o.id for o in found] == ["human_subjects"]
        assert "tao" in catalog.omission_rules[2].whole_word

    def test_multiple_rules(self):
        found = self.detector.detect("The survey of students ran for a week.")
        assert {o.id for o in found} == {"minors_protection", "data_privacy"}

    def test_custom_rules(self):
        rule = OmissionRule(id="r", triggers=("drone",), expectations=("permit",), label="L")
        detector = OmissionDetector((rule,))
        assert detector.detect("A drone flew.")[0].id == "r"
        assert detector.detect("A drone flew under permit.") == []
        assert detector.detect("Drones flew.")[0].trigger_found == "drone"

        pinned = OmissionRule(id="r", triggers=("drone",), expectations=("permit",),
                              label="L", whole_word=frozenset({"drone"}))
        assert OmissionDetector((pinned,)).detect("Drones flew.") == []

    def test_risk_scaling(self):
        assert omission_risk(0) == 0
        assert omission_risk(1, scale=35) == 35
        assert omission_risk(3, scale=35) == 100
