"""
Pattern catalog tests — loading, compilation, and bad-rule handling.
"""

import json

import pytest

from auditcore.errors import CatalogError
from auditcore.patterns import catalog, compile_phrase, load_catalog


def _write_dictionary(tmp_path, **overrides):
    data = {
        "version": "test",
        "patterns": [{"phrase": "delve into", "weight": 2.5, "category": "ai_mega"}],
        "omission_rules": [],
        "style": {},
        "sections": ["introduction", "conclusion"],
    }
    data.update(overrides)
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestBundledCatalog:
    def test_loads(self):
        assert catalog.version == "2.0.0"
        assert len(catalog.patterns) > 200

    def test_all_weights_positive(self):
        assert all(p.rule.weight > 0 for p in catalog.patterns)

    def test_rows_unique(self):
        rows = [(p.rule.phrase.lower(), p.rule.category, p.rule.weight) for p in catalog.patterns]
        assert len(rows) == len(set(rows))

    def test_repeated_phrases_kept_as_separate_rules(self):
        caution = [p.rule.weight for p in catalog.patterns
                   if p.rule.phrase == "interpreted with caution"]
        assert sorted(caution) == [1.2, 1.5]
        hedges = {p.rule.category for p in catalog.patterns
                  if p.rule.phrase == "maaaring sabihing"}
        assert hedges == {"discussion_ph", "hedging_ph"}

    def test_has_english_and_filipino_categories(self):
        cats = catalog.categories
        assert "ai_mega" in cats
        assert "intro_ph" in cats

    def test_omission_rules_disjoint(self):
        for rule in catalog.omission_rules:
            assert rule.triggers and rule.expectations
            assert not set(rule.triggers) & set(rule.expectations)

    def test_sections_in_canonical_order(self):
        assert catalog.sections[0] == "introduction"
        assert catalog.sections[-1] == "conclusion"

    def test_get_patterns_filters_by_category(self):
        mega = catalog.get_patterns(category="ai_mega")
        assert mega
        assert all(p["category"] == "ai_mega" for p in mega)
        assert {"phrase", "weight", "category"} <= set(mega[0])


class TestCompilePhrase:
    def test_literal_is_escaped(self):
        rx = compile_phrase("according to .*? et al.")
        assert rx.search("according to Santos et al. (2020)")
        assert not rx.search("according to Santos et alX")

    def test_word_boundaries(self):
        rx = compile_phrase("like")
        assert rx.search("it looks like rain")
        assert not rx.search("this is likely")
        assert not rx.search("unlike before")

    def test_case_insensitive(self):
        assert compile_phrase("tapestry of").search("A Tapestry Of ideas")

    def test_whitespace_flexible(self):
        assert compile_phrase("delve into").search("we delve\n  into it")

    def test_wildcard_bounded_gap(self):
        rx = compile_phrase("importance of .*? cannot be overstated", max_gap_tokens=3)
        assert rx.search("the importance of early reading cannot be overstated")
        far = "the importance of " + "word " * 20 + "cannot be overstated"
        assert not rx.search(far)

    def test_trailing_punctuation_has_no_boundary(self):
        rx = compile_phrase("ayon sa datos,")
        assert rx.search("Ayon sa datos, tumaas ang bilang.")

    def test_empty_phrase_rejected(self):
        with pytest.raises(ValueError):
            compile_phrase("   ")

    def test_edge_wildcard_rejected(self):
        with pytest.raises(ValueError):
            compile_phrase(".* remains unclear")


class TestLoadCatalog:
    def test_missing_file_is_catalog_error(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog(tmp_path / "nope.json")

    def test_invalid_json_is_catalog_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_bad_rules_skipped_not_fatal(self, tmp_path):
        path = _write_dictionary(tmp_path, patterns=[
            {"phrase": "delve into", "weight": 2.5, "category": "ai_mega"},
            {"phrase": "Delve Into", "weight": 2.5, "category": "ai_mega"},
            {"phrase": "zero weight", "weight": 0, "category": "x"},
            {"phrase": "negative", "weight": -1, "category": "x"},
            {"phrase": ".* edge", "weight": 1, "category": "x"},
            {"phrase": "", "weight": 1, "category": "x"},
        ])
        loaded = load_catalog(path)
        assert [p.rule.phrase for p in loaded.patterns] == ["delve into"]
        assert len(loaded.skipped) == 5

    def test_overlapping_omission_rule_skipped(self, tmp_path):
        path = _write_dictionary(tmp_path, omission_rules=[
            {"id": "ok", "triggers": ["survey"], "expectations": ["privacy"], "label": "L"},
            {"id": "bad", "triggers": ["consent"], "expectations": ["consent"], "label": "L"},
            {"id": "empty", "triggers": [], "expectations": ["x"], "label": "L"},
        ])
        loaded = load_catalog(path)
        assert [r.id for r in loaded.omission_rules] == ["ok"]
        assert set(loaded.skipped) == {"bad", "empty"}

    def test_same_phrase_other_category_kept(self, tmp_path):
        path = _write_dictionary(tmp_path, patterns=[
            {"phrase": "delve into", "weight": 2.5, "category": "ai_mega"},
            {"phrase": "delve into", "weight": 1.0, "category": "connector"},
        ])
        loaded = load_catalog(path)
        assert len(loaded.patterns) == 2
        assert loaded.skipped == ()

    def test_whole_word_limited_to_triggers(self, tmp_path):
        path = _write_dictionary(tmp_path, omission_rules=[
            {"id": "r", "triggers": ["tao", "survey"], "expectations": ["privacy"],
             "whole_word": ["tao", "privacy"], "label": "L"},
        ])
        rule = load_catalog(path).omission_rules[0]
        assert rule.whole_word == frozenset({"tao"})

    def test_catalog_is_immutable(self):
        with pytest.raises(Exception):
            catalog.version = "hacked"
