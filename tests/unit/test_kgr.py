"""Tests for KGR scoring and SERP block parsing."""

import pytest

from kgrlens.services.serp.kgr import (
    compute_kgr,
    count_title_matches,
    is_kgr_eligible,
    not_applicable_result,
    over_limit_message,
    parse_answer_box,
    parse_people_also_ask,
    parse_related_searches,
    rate_kgr,
)
from kgrlens.services.serp.types import AnswerBox, PeopleAlsoAsk


@pytest.mark.parametrize(
    ("title_matches", "kgr", "rating"),
    [
        (0, 0.0, "great"),
        (2, 0.2, "great"),
        (5, 0.5, "might_work"),
        (10, 1.0, "might_work"),
        (11, 1.1, "bad"),
    ],
)
def test_kgr_bands(title_matches: int, kgr: float, rating: str) -> None:
    value = compute_kgr(title_matches)

    assert value == pytest.approx(kgr)
    assert rate_kgr(value) == rating


def test_kgr_band_boundaries() -> None:
    assert rate_kgr(0.2499) == "great"
    assert rate_kgr(0.25) == "might_work"
    assert rate_kgr(1.0) == "might_work"
    assert rate_kgr(1.0001) == "bad"
    assert rate_kgr(None) == "not_applicable"


def test_volume_ceiling_is_inclusive() -> None:
    assert is_kgr_eligible(250)
    assert not is_kgr_eligible(251)
    assert is_kgr_eligible(0)
    assert is_kgr_eligible(500, ceiling=500)
    assert over_limit_message() == "Volume exceeds KGR limit (250)"


def test_not_applicable_result_shape() -> None:
    result = not_applicable_result("Volume exceeds KGR limit (250)")

    assert result.to_dict() == {
        "title_matches": 0,
        "kgr": None,
        "kgr_rating": "not_applicable",
        "people_also_ask": [],
        "answer_box": None,
        "related_searches": [],
        "error": "Volume exceeds KGR limit (250)",
    }


def test_count_title_matches_is_case_insensitive_substring() -> None:
    organic = [
        {"title": "Melhores Sapatilhas Trail de 2024"},
        {"title": "sapatilhas trail baratas"},
        {"title": "Sapatilhas de corrida"},
        {"title": None},
        {"link": "https://example.pt"},
        "garbage",
    ]

    assert count_title_matches("sapatilhas trail", organic) == 2
    assert count_title_matches("sapatilhas trail", []) == 0


def test_parse_people_also_ask_skips_entries_without_question() -> None:
    parsed = parse_people_also_ask(
        [
            {"question": "Qual a melhor sapatilha?", "answer": "Depende."},
            {"question": "Sem resposta?"},
            {"answer": "orphan"},
            "garbage",
        ]
    )

    assert parsed == [
        PeopleAlsoAsk(question="Qual a melhor sapatilha?", answer="Depende."),
        PeopleAlsoAsk(question="Sem resposta?", answer=None),
    ]
    assert parse_people_also_ask(None) == []


def test_parse_answer_box() -> None:
    assert parse_answer_box(None) is None
    assert parse_answer_box({}) is None
    assert parse_answer_box({"title": "T", "content": "C", "type": "featured_snippet"}) == AnswerBox(
        title="T", content="C", type="featured_snippet"
    )


def test_parse_related_searches_accepts_strings_and_objects() -> None:
    items = ["trail running", {"query": "sapatilhas hoka"}, {"title": "salomon"}, {"other": 1}, ""]

    assert parse_related_searches(items) == ["trail running", "sapatilhas hoka", "salomon"]
    assert parse_related_searches({"query": "x"}) == []
