from app.models.generated_script import GeneratedScript
from app.models.library import PersonalScript
from app.models.usage import DailyUsage
from conftest import SCRIPTS_PAYLOAD, auth_headers, count_rows, usage_row

CATEGORIES = "/api/library/categories"
SCRIPTS = "/api/library/scripts"


def _create_script(client, headers, **fields):
    body = {"title": "Declining politely", "content": "Thanks for thinking of me, but I can't make it."}
    body.update(fields)
    response = client.post(SCRIPTS, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _create_category(client, headers, name="Work", **fields):
    response = client.post(CATEGORIES, json={"name": name, **fields}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_category_lifecycle(client, make_user):
    headers = auth_headers(make_user())
    work = _create_category(client, headers, name="  Work  ")
    _create_category(client, headers, name="Family", color="#10B981")

    assert work["name"] == "Work"
    assert work["color"] == "#3B82F6"
    assert [c["name"] for c in client.get(CATEGORIES, headers=headers).json()] == ["Family", "Work"]

    response = client.patch(f"{CATEGORIES}/{work['id']}", json={"name": "Office", "color": "#EF4444"}, headers=headers)
    assert response.status_code == 200
    assert (response.json()["name"], response.json()["color"]) == ("Office", "#EF4444")

    assert client.delete(f"{CATEGORIES}/{work['id']}", headers=headers).status_code == 204
    assert [c["name"] for c in client.get(CATEGORIES, headers=headers).json()] == ["Family"]


def test_category_names_are_unique_per_user(client, make_user):
    headers = auth_headers(make_user())
    _create_category(client, headers, name="Work")
    family = _create_category(client, headers, name="Family")

    assert client.post(CATEGORIES, json={"name": "Work"}, headers=headers).status_code == 400
    assert client.patch(f"{CATEGORIES}/{family['id']}", json={"name": "Work"}, headers=headers).status_code == 400

    # Another user may reuse the name
    _create_category(client, auth_headers(make_user()), name="Work")


def test_category_input_is_validated(client, make_user):
    headers = auth_headers(make_user())
    assert client.post(CATEGORIES, json={"name": "   "}, headers=headers).status_code == 400
    assert client.post(CATEGORIES, json={"name": "Work", "color": "blue"}, headers=headers).status_code == 400


def test_deleting_a_category_keeps_its_scripts(client, make_user):
    headers = auth_headers(make_user())
    category = _create_category(client, headers)
    script = _create_script(client, headers, category_id=category["id"])
    assert script["category_id"] == category["id"]

    client.delete(f"{CATEGORIES}/{category['id']}", headers=headers)

    scripts = client.get(SCRIPTS, headers=headers).json()
    assert [s["id"] for s in scripts] == [script["id"]]
    assert scripts[0]["category_id"] is None


def test_create_update_and_delete_script(client, make_user):
    headers = auth_headers(make_user())
    category = _create_category(client, headers)
    script = _create_script(client, headers, tags=[" work ", "", "Work", "meetings"])

    assert script["tags"] == ["work", "meetings"]
    assert script["usage_count"] == 0
    assert script["category_id"] is None

    response = client.patch(
        f"{SCRIPTS}/{script['id']}",
        json={"title": "  Saying no  ", "category_id": category["id"], "tags": ["boundaries"]},
        headers=headers,
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["title"] == "Saying no"
    assert updated["category_id"] == category["id"]
    assert updated["tags"] == ["boundaries"]
    assert updated["content"] == script["content"]

    response = client.patch(f"{SCRIPTS}/{script['id']}", json={"category_id": None}, headers=headers)
    assert response.json()["category_id"] is None

    assert client.delete(f"{SCRIPTS}/{script['id']}", headers=headers).status_code == 204
    assert client.get(SCRIPTS, headers=headers).json() == []


def test_script_needs_an_owned_category(client, make_user):
    headers = auth_headers(make_user())
    other_category = _create_category(client, auth_headers(make_user()))

    response = client.post(
        SCRIPTS,
        json={"title": "Hi", "content": "Hello there", "category_id": other_category["id"]},
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Category not found"


def test_library_is_private(client, make_user):
    owner = auth_headers(make_user())
    other = auth_headers(make_user())
    category = _create_category(client, owner)
    script = _create_script(client, owner)

    assert client.get(SCRIPTS, headers=other).json() == []
    assert client.get(CATEGORIES, headers=other).json() == []
    assert client.patch(f"{SCRIPTS}/{script['id']}", json={"title": "x"}, headers=other).status_code == 404
    assert client.delete(f"{SCRIPTS}/{script['id']}", headers=other).status_code == 404
    assert client.post(f"{SCRIPTS}/{script['id']}/use", headers=other).status_code == 404
    assert client.patch(f"{CATEGORIES}/{category['id']}", json={"name": "x"}, headers=other).status_code == 404
    assert client.delete(f"{CATEGORIES}/{category['id']}", headers=other).status_code == 404
    assert client.delete(f"{SCRIPTS}/not-an-id", headers=owner).status_code == 404


def test_search_filter_and_sort(client, make_user):
    headers = auth_headers(make_user())
    work = _create_category(client, headers)
    raise_ask = _create_script(client, headers, title="Asking for a raise", content="I'd like to discuss my pay.",
                               category_id=work["id"], tags=["salary"])
    decline = _create_script(client, headers, title="declining a party", content="Thanks, but I can't come.",
                             tags=["friends", "Weekend"])
    _create_script(client, headers, title="Checking in", content="How is the project going?", category_id=work["id"])

    def titles(**params):
        response = client.get(SCRIPTS, params=params, headers=headers)
        assert response.status_code == 200
        return [s["title"] for s in response.json()]

    assert titles(search="PAY") == ["Asking for a raise"]
    assert titles(search="weekend") == ["declining a party"]
    assert sorted(titles(category_id=work["id"])) == ["Asking for a raise", "Checking in"]
    assert titles(tag=["sal", "friend"], sort="alphabetical") == ["Asking for a raise", "declining a party"]
    assert titles(sort="alphabetical") == ["Asking for a raise", "Checking in", "declining a party"]
    assert titles(sort="alphabetical", skip=1, limit=1) == ["Checking in"]

    for _ in range(2):
        client.post(f"{SCRIPTS}/{decline['id']}/use", headers=headers)
    client.post(f"{SCRIPTS}/{raise_ask['id']}/use", headers=headers)
    assert titles(sort="popular")[:2] == ["declining a party", "Asking for a raise"]

    assert client.get(SCRIPTS, params={"sort": "random"}, headers=headers).status_code == 400


def test_recording_use(client, make_user):
    headers = auth_headers(make_user())
    script = _create_script(client, headers)

    response = client.post(f"{SCRIPTS}/{script['id']}/use", headers=headers)
    assert response.status_code == 200
    assert response.json()["usage_count"] == 1
    assert response.json()["last_used_at"] is not None

    response = client.post(f"{SCRIPTS}/{script['id']}/use", headers=headers)
    assert response.json()["usage_count"] == 2


def test_save_from_generation(client, make_user, text_provider, session_factory):
    text_provider.result = SCRIPTS_PAYLOAD
    user = make_user()
    headers = auth_headers(user)
    generation = client.post(
        "/api/scripts/generate",
        json={"situation_context": "My manager asked me to work late on Friday.", "relationship_type": "manager"},
        headers=headers,
    ).json()
    category = _create_category(client, headers)

    response = client.post(
        f"{SCRIPTS}/from-generation",
        json={
            "generation_id": generation["id"],
            "selected_response": "professional",
            "title": "Working late",
            "category_id": category["id"],
            "tags": ["boss"],
        },
        headers=headers,
    )
    assert response.status_code == 201
    script = response.json()
    assert script["content"] == SCRIPTS_PAYLOAD["responses"]["professional"]["content"]
    assert script["source_generation_id"] == generation["id"]
    assert script["category_id"] == category["id"]

    history = client.get("/api/scripts/history", headers=headers).json()
    assert history[0]["selected_response"] == "professional"
    assert history[0]["saved_to_library"] is True

    # Saving is not a metered generation
    assert usage_row(session_factory, user.id).script_generations_count == 1
    assert count_rows(session_factory, DailyUsage) == 1


def test_save_from_someone_elses_generation_is_not_found(client, make_user, text_provider, session_factory):
    text_provider.result = SCRIPTS_PAYLOAD
    owner = auth_headers(make_user())
    generation = client.post(
        "/api/scripts/generate",
        json={"situation_context": "A friend invited me to a party.", "relationship_type": "friend"},
        headers=owner,
    ).json()

    body = {"generation_id": generation["id"], "selected_response": "casual", "title": "Party"}
    response = client.post(f"{SCRIPTS}/from-generation", json=body, headers=auth_headers(make_user()))
    assert response.status_code == 404

    body["selected_response"] = "sarcastic"
    assert client.post(f"{SCRIPTS}/from-generation", json=body, headers=owner).status_code == 400

    assert count_rows(session_factory, PersonalScript) == 0
    with session_factory() as session:
        assert session.query(GeneratedScript).one().saved_to_library is False


def test_library_requires_sign_in(client):
    assert client.get(SCRIPTS).status_code == 401
    assert client.post(CATEGORIES, json={"name": "Work"}).status_code == 401
