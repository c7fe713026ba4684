"""Tests for keyword classification and content analysis."""

import pytest

from teslajustice.cases.classification import (
    determine_building_type,
    determine_damage_types,
    determine_property_type,
    determine_target_type,
    mentions,
)
from teslajustice.intel.analyzer import KeywordAnalyzer


@pytest.fixture
def analyzer():
    return KeywordAnalyzer()


class TestMentions:
    def test_matches_at_word_start(self):
        assert mentions("Car was keyed overnight", ["key"])

    def test_case_insensitive(self):
        assert mentions("SUPERCHARGER hit", ["supercharger"])

    def test_ignores_inner_substrings(self):
        assert not mentions("White Tesla", ["hit"])


class TestTargetType:
    def test_vehicle_is_default(self):
        assert determine_target_type("My Model Y got scratched") == "vehicle"

    def test_building_checked_first(self):
        assert determine_target_type("Sign outside the Tesla store smashed") == "building"

    def test_property(self):
        assert determine_target_type("Tesla billboard covered in paint") == "property"

    @pytest.mark.parametrize("content, expected", [
        ("Dealership windows broken", "dealership"),
        ("Supercharger cables cut", "supercharger"),
        ("Tesla store tagged", "store"),
        ("Protest at the gigafactory", "factory"),
        ("Some building", "other"),
    ])
    def test_building_type(self, content, expected):
        assert determine_building_type(content) == expected

    def test_property_type(self):
        assert determine_property_type("The sign was bent") == "sign"
        assert determine_property_type("Charging equipment wrecked") == "equipment"
        assert determine_property_type("Fence damaged") == "other"


class TestDamageTypes:
    def test_single_category(self):
        assert determine_damage_types("White Tesla Model 3 keyed in Austin, TX") == ["keying"]

    def test_multiple_categories_in_fixed_order(self):
        content = "Tires slashed and windows smashed, then spray painted"
        assert determine_damage_types(content) == [
            "broken_windows", "graffiti", "tire_slashing", "denting",
        ]

    def test_window_needs_breakage_word(self):
        assert "broken_windows" not in determine_damage_types("Sticker on the window")

    def test_never_empty(self):
        assert determine_damage_types("Something happened to my Tesla") == ["other_damage"]


class TestKeywordAnalyzer:
    def test_relevant_post(self, analyzer):
        analysis = analyzer.analyze("White Tesla Model 3 keyed in Austin, TX")
        assert analysis.is_relevant
        assert analysis.relevance_score == pytest.approx(0.8)
        assert analysis.has_tesla_reference
        assert analysis.has_vandalism_reference
        assert analysis.location_info.city == "Austin"
        assert analysis.location_info.state == "TX"
        assert analysis.target_info.model == "Model 3"
        assert analysis.target_info.color == "white"
        assert analysis.target_info.type == "vehicle"
        assert analysis.damage_types == ["keying"]
        assert analysis.summary.startswith("white Tesla Model 3 vandalism incident in Austin, TX")

    def test_vandalism_threshold_is_strict(self, analyzer):
        analysis = analyzer.analyze("Tesla vandalized last night")
        assert analysis.is_relevant
        assert not analysis.is_vandalism

    def test_tesla_only_is_not_relevant(self, analyzer):
        analysis = analyzer.analyze("Just picked up my new Tesla")
        assert analysis.relevance_score == pytest.approx(0.32)
        assert not analysis.is_relevant
        assert analysis.summary == ""

    def test_no_location(self, analyzer):
        location = analyzer.extract_location("Tesla keyed somewhere downtown")
        assert location.city == ""
        assert location.confidence == pytest.approx(0.2)

    def test_multi_word_city(self, analyzer):
        location = analyzer.extract_location("Cybertruck smashed in San Francisco, CA today")
        assert location.city == "San Francisco"
        assert location.state == "CA"

    def test_year_within_range(self, analyzer):
        assert analyzer.extract_year("my 2021 Model Y", current_year=2024) == "2021"
        assert analyzer.extract_year("back in 2005 and 2030", current_year=2024) == ""

    def test_entities(self, analyzer):
        entities = analyzer.extract_entities("Police arrested John Smith on Friday")
        assert [e.text for e in entities] == ["John Smith"]
        assert entities[0].type == "PERSON"
