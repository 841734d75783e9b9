import pytest

from app.dependencies import get_llm_client
from app.dependencies import llm as llm_dependency
from tests.fakes import FakeLLMClient, completion


@pytest.fixture
def llm_override(app, fake_llm):
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    yield fake_llm
    app.dependency_overrides.pop(get_llm_client, None)


def test_read_root(client):
    response = client.get("/api/")
    assert response.status_code == 200
    assert response.json() == {"message": "Timeline Events API is running!"}


def test_generate_events(client, llm_override):
    response = client.post(
        "/api/events/generate",
        json={
            "timeline_name": "Ancient world",
            "timeline_description": "Milestones of early civilisation",
            "max_events": 3,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert [e["year"] for e in body["events"]] == [-9500, -3000, -776]
    assert body["events"][0]["date_iso"] == "-9500-01-01"
    assert len(llm_override.calls) == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"timeline_name": "  ", "timeline_description": "x"},
        {"timeline_name": "x"},
        {"timeline_name": "x", "timeline_description": "y", "max_events": 0},
        {"timeline_name": "x", "timeline_description": "y", "max_events": 101},
    ],
)
def test_generate_events_rejects_invalid_request(client, llm_override, payload):
    response = client.post("/api/events/generate", json=payload)
    assert response.status_code == 422
    assert llm_override.calls == []


def test_generate_events_failure_returns_structured_error(client, app):
    failing = FakeLLMClient(lambda messages: completion("Sorry, I cannot help."))
    app.dependency_overrides[get_llm_client] = lambda: failing

    response = client.post(
        "/api/events/generate",
        json={"timeline_name": "x", "timeline_description": "y", "max_events": 10},
    )
    assert response.status_code == 502
    body = response.json()
    assert body["suggested_max_events"] == 5
    assert body["diagnostic"]["open_braces"] == 0
    assert "Failed to recover events" in body["error"]


def test_generate_events_without_llm_client(client, monkeypatch):
    monkeypatch.setattr(llm_dependency, "get_shared_llm_instance", lambda: None)
    response = client.post(
        "/api/events/generate",
        json={"timeline_name": "x", "timeline_description": "y"},
    )
    assert response.status_code == 503


def test_parse_events_partial(client):
    raw = (
        '{"events": [{"year": "9500 BC", "title": "A"}, '
        '{"year": "3000", "title": "B"}, {"year": "77'
    )
    response = client.post(
        "/api/events/parse",
        json={"raw_text": raw, "max_events": 3, "length_limited": True},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "partial"
    assert [e["year"] for e in body["events"]] == [-9500, -3000]
    assert body["recovered_count"] == 2
    assert body["extraction_statuses"] == ["salvaged"]
    assert "2 of 3" in body["warning"]


def test_parse_events_failure(client):
    response = client.post("/api/events/parse", json={"raw_text": '{"events": [{'})
    assert response.status_code == 502
    body = response.json()
    assert body["suggested_max_events"] is None
    assert body["diagnostic"]["open_braces"] == 2


def test_resolve_years(client):
    response = client.post(
        "/api/events/resolve-years",
        json={
            "records": [
                {"year": "9500 BC"},
                {"year": "3000"},
                {"year": "776"},
                {"title": "no year"},
            ]
        },
    )
    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["resolved_year"] for r in results] == [-9500, -3000, -776, None]
    assert [r["had_year_provided"] for r in results] == [True, True, True, False]
    assert results[1]["rule"] == "whole_sequence_bc"


def test_resolve_years_requires_records(client):
    response = client.post("/api/events/resolve-years", json={})
    assert response.status_code == 422


def test_resolve_years_oversized_year_is_not_an_error(client):
    response = client.post(
        "/api/events/resolve-years",
        json={"records": [{"year": "9" * 5000}, {"year": "776 BC"}]},
    )
    assert response.status_code == 200
    results = response.json()["results"]
    assert results[0] == {"resolved_year": None, "had_year_provided": False, "rule": None}
    assert results[1]["resolved_year"] == -776
