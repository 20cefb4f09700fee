"""Tests for contact scoring and lead detail extraction."""

import pytest

from aidevelo.lead.capture import extract_lead_fields, merge_lead_fields
from aidevelo.lead.scoring import module_points, score_contact


class TestScoreContact:
    def test_top_scores(self):
        assert score_contact("100k+", "asap", "1000+", ["phone", "chat", "social"]) == "85"

    def test_unknown_values_get_floor_points(self):
        assert score_contact("tbd", "someday", "?", []) == "25"

    def test_mixed(self):
        assert score_contact("50k-100k", "asap", "51-200", ["phone", "chat"]) == "65"
        assert score_contact("15k-50k", "3-6months", "201-999", ["chat"]) == "50"
        assert score_contact("<15k", "1-3months", "1-10", ["phone"]) == "35"

    @pytest.mark.parametrize("count,points", [(0, 5), (1, 5), (2, 10), (3, 15), (5, 15)])
    def test_module_points(self, count, points):
        assert module_points(["m"] * count) == points


class TestExtractLeadFields:
    def test_all_fields(self):
        text = "My name is Anna Schmidt, email anna.schmidt@example.com, phone +41 79 123 45 67"
        assert extract_lead_fields(text) == {
            "name": "Anna Schmidt",
            "email": "anna.schmidt@example.com",
            "phone": "+41 79 123 45 67",
        }

    def test_short_introduction(self):
        assert extract_lead_fields("Hi, I'm Tom")["name"] == "Tom"

    def test_lowercase_words_are_not_names(self):
        assert "name" not in extract_lead_fields("I am interested in the chat agent")

    def test_short_numbers_are_not_phones(self):
        assert "phone" not in extract_lead_fields("We have 3 locations and 120 staff")

    def test_empty_text(self):
        assert extract_lead_fields("") == {}


def test_merge_prefers_primary_values():
    merged = merge_lead_fields(
        {"name": "Anna", "email": None},
        {"name": "Someone Else", "email": "anna@example.com", "phone": ""},
    )
    assert merged == {"name": "Anna", "email": "anna@example.com"}
