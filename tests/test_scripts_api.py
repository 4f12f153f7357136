import pytest

from app.models.generated_script import GeneratedScript
from app.models.usage import DailyUsage
from app.models.user import SubscriptionTier
from conftest import SCRIPTS_PAYLOAD, auth_headers, count_rows, usage_row

GENERATE = "/api/scripts/generate"
SITUATION = {
    "situation_context": "My manager asked if I can take on another project this week.",
    "relationship_type": "manager",
}


@pytest.fixture
def text_provider():
    from conftest import FakeTextProvider
    return FakeTextProvider(result=SCRIPTS_PAYLOAD)


def test_generation_returns_three_styles(client, make_user, text_provider, session_factory):
    user = make_user()
    response = client.post(GENERATE, json=SITUATION, headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert set(body["responses"]) == {"casual", "professional", "direct"}
    assert body["responses"]["direct"]["content"] == "Yes. Friday."
    assert "your supervisor or boss" in text_provider.calls[0]["user"]
    assert text_provider.calls[0]["max_tokens"] == 800

    assert count_rows(session_factory, GeneratedScript) == 1
    row = usage_row(session_factory, user.id)
    assert row.script_generations_count == 1
    assert row.tone_analyses_count == 0


def test_fourth_free_generation_is_rate_limited(client, make_user, text_provider):
    headers = auth_headers(make_user())
    for _ in range(3):
        assert client.post(GENERATE, json=SITUATION, headers=headers).status_code == 200

    response = client.post(GENERATE, json=SITUATION, headers=headers)
    assert response.status_code == 429
    assert "3 free script generations" in response.json()["message"]
    assert len(text_provider.calls) == 3


def test_premium_generations_are_unlimited(client, make_user):
    headers = auth_headers(make_user(tier=SubscriptionTier.PREMIUM))
    statuses = {client.post(GENERATE, json=SITUATION, headers=headers).status_code for _ in range(100)}
    assert statuses == {200}


def test_relationship_type_is_validated(client, make_user, text_provider):
    payload = dict(SITUATION, relationship_type="nemesis")
    response = client.post(GENERATE, json=payload, headers=auth_headers(make_user()))
    assert response.status_code == 400
    assert response.json()["error_type"] == "validation"
    assert text_provider.calls == []


def test_relationship_type_is_case_insensitive(client, make_user):
    payload = dict(SITUATION, relationship_type="Colleague")
    response = client.post(GENERATE, json=payload, headers=auth_headers(make_user()))
    assert response.status_code == 200


@pytest.mark.parametrize("payload", [
    {"relationship_type": "friend"},
    {"situation_context": "Dinner plans changed"},
    {"situation_context": "x" * 1001, "relationship_type": "friend"},
])
def test_missing_or_oversized_fields(client, make_user, payload):
    response = client.post(GENERATE, json=payload, headers=auth_headers(make_user()))
    assert response.status_code == 400


def test_situation_is_moderated(client, make_user, text_provider, session_factory):
    payload = dict(SITUATION, situation_context="This damn project again")
    response = client.post(GENERATE, json=payload, headers=auth_headers(make_user()))
    assert response.status_code == 400
    assert "inappropriate language" in response.json()["reason"]
    assert text_provider.calls == []
    assert count_rows(session_factory, DailyUsage) == 0
    assert count_rows(session_factory, GeneratedScript) == 0


def test_missing_response_style_is_malformed(client, make_user, text_provider, session_factory):
    text_provider.result = {"responses": {"casual": SCRIPTS_PAYLOAD["responses"]["casual"]}}
    response = client.post(GENERATE, json=SITUATION, headers=auth_headers(make_user()))
    assert response.status_code == 500
    assert count_rows(session_factory, DailyUsage) == 0
