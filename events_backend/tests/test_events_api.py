from datetime import datetime, timedelta, timezone

from conftest import ADMIN_HEADERS, ELEVATED_KEY, RESTRICTED_KEY

from src.api.errors import ConfigurationError, StoreError
from src.api.gateway import Gateway, StoreConfig, get_gateway
from src.api.main import _allowed_methods, app
from src.api.repositories import InMemoryRepository


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def iso_in(days: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_event_payload(
    title="Friday Night Magic",
    start_datetime=None,
    event_type="weekly",
    **extra,
):
    payload = {
        "title": title,
        "start_datetime": start_datetime or iso_in(2),
        "event_type": event_type,
    }
    payload.update(extra)
    return payload


def seed(repo, event_id, days, **extra):
    record = {
        "id": event_id,
        "title": extra.pop("title", event_id),
        "start_datetime": datetime.now(timezone.utc) + timedelta(days=days),
        "event_type": extra.pop("event_type", "weekly"),
    }
    record.update(extra)
    return repo.upsert([record])[0]


def assert_event_shape(event: dict):
    for key in [
        "id",
        "title",
        "description",
        "start_datetime",
        "end_datetime",
        "event_type",
        "game_tags",
        "entry_fee",
        "registration_link",
        "image_url",
        "created_at",
    ]:
        assert key in event
    assert isinstance(event["id"], str) and event["id"]
    parse_ts(event["start_datetime"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] in ("memory", "rest")


class TestCreate:
    def test_create_generates_id(self, client, factory):
        res = client.post("/events", json=create_event_payload(), headers=ADMIN_HEADERS)
        assert res.status_code == 201
        event = res.json()
        assert_event_shape(event)
        assert event["title"] == "Friday Night Magic"
        assert event["description"] is None
        assert event["game_tags"] is None
        assert event["created_at"] is not None
        assert factory.keys == [ELEVATED_KEY]

    def test_create_then_get_round_trip(self, client):
        payload = create_event_payload(
            id="tournament-pkmn",
            title="Pokémon Store Championship",
            description="Swiss rounds with cut to top 8.",
            start_datetime="2030-05-01T18:00:00Z",
            end_datetime="2030-05-01T23:00:00Z",
            event_type="tournament",
            game_tags=["Pokémon TCG"],
            entry_fee="$20",
            registration_link="https://example.com/register/pkmn-champs",
        )
        res = client.post("/events", json=payload, headers=ADMIN_HEADERS)
        assert res.status_code == 201

        fetched = client.get("/events/tournament-pkmn").json()
        for key, value in payload.items():
            if key.endswith("_datetime"):
                assert parse_ts(fetched[key]) == parse_ts(value)
            else:
                assert fetched[key] == value

    def test_create_with_existing_id_replaces(self, client, repo):
        first = create_event_payload(id="weekly-commander", title="Commander", entry_fee="$5")
        second = create_event_payload(id="weekly-commander", title="Commander Casual Night")
        assert client.post("/events", json=first, headers=ADMIN_HEADERS).status_code == 201
        res = client.post("/events", json=second, headers=ADMIN_HEADERS)
        assert res.status_code == 201
        assert res.json()["title"] == "Commander Casual Night"
        # Replace, not merge: the omitted fee is gone
        assert res.json()["entry_fee"] is None
        assert len(repo.list_all()) == 1

    def test_naive_timestamp_is_utc(self, client):
        payload = create_event_payload(start_datetime="2030-01-02T03:04:05")
        res = client.post("/events", json=payload, headers=ADMIN_HEADERS)
        assert parse_ts(res.json()["start_datetime"]) == datetime(
            2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc
        )

    def test_end_before_start_is_accepted(self, client):
        payload = create_event_payload(
            start_datetime="2030-01-02T20:00:00Z", end_datetime="2030-01-02T18:00:00Z"
        )
        res = client.post("/events", json=payload, headers=ADMIN_HEADERS)
        assert res.status_code == 201


class TestAuthorization:
    def test_missing_caller_is_unauthorized(self, client, factory, repo):
        res = client.post("/events", json=create_event_payload())
        assert res.status_code == 401
        assert res.json() == {"error": "Unauthorized"}
        assert factory.keys == []
        assert repo.list_all() == []

    def test_caller_not_on_allowlist(self, client, repo):
        seed(repo, "keep-me", 3)
        headers = {"X-User-Id": "user_mallory"}
        assert client.post("/events", json=create_event_payload(), headers=headers).status_code == 401
        assert client.put("/events/keep-me", json={"title": "x"}, headers=headers).status_code == 401
        assert client.delete("/events/keep-me", headers=headers).status_code == 401
        assert client.get("/admin/events", headers=headers).status_code == 401
        assert repo.get("keep-me")["title"] == "keep-me"

    def test_second_allowlisted_id(self, client):
        res = client.post(
            "/events", json=create_event_payload(), headers={"X-User-Id": "other_admin"}
        )
        assert res.status_code == 201

    def test_unset_allowlist_denies_everyone(self, client, monkeypatch):
        monkeypatch.delenv("ADMIN_USER_IDS")
        res = client.post("/events", json=create_event_payload(), headers=ADMIN_HEADERS)
        assert res.status_code == 401

    def test_allowlist_is_read_per_request(self, client, monkeypatch):
        monkeypatch.setenv("ADMIN_USER_IDS", "someone_else")
        assert client.post("/events", json=create_event_payload(), headers=ADMIN_HEADERS).status_code == 401
        monkeypatch.setenv("ADMIN_USER_IDS", "user_admin")
        assert client.post("/events", json=create_event_payload(), headers=ADMIN_HEADERS).status_code == 201

    def test_custom_caller_header(self, client, monkeypatch):
        monkeypatch.setenv("CALLER_ID_HEADER", "X-Clerk-User")
        res = client.post(
            "/events", json=create_event_payload(), headers={"X-Clerk-User": "user_admin"}
        )
        assert res.status_code == 201
        assert client.post("/events", json=create_event_payload(), headers=ADMIN_HEADERS).status_code == 401

    def test_unauthorized_before_validation(self, client):
        res = client.post("/events", json={"title": ""})
        assert res.status_code == 401


class TestListAndGet:
    def test_list_upcoming_only_sorted(self, client, repo, factory):
        seed(repo, "later", 5)
        seed(repo, "past", -1)
        seed(repo, "soon", 1)
        res = client.get("/events")
        assert res.status_code == 200
        items = res.json()
        assert [e["id"] for e in items] == ["soon", "later"]
        now = datetime.now(timezone.utc)
        starts = [parse_ts(e["start_datetime"]) for e in items]
        assert all(s >= now - timedelta(minutes=1) for s in starts)
        assert starts == sorted(starts)
        assert factory.keys == [RESTRICTED_KEY]

    def test_list_empty(self, client):
        res = client.get("/events")
        assert res.status_code == 200
        assert res.json() == []

    def test_list_search_is_case_and_accent_insensitive(self, client, repo):
        seed(repo, "pokemon-league", 2, title="Pokémon League Night")
        seed(repo, "fnm", 3, title="Friday Night Magic", description="Standard")
        res = client.get("/events", params={"q": "pokemon"})
        assert [e["id"] for e in res.json()] == ["pokemon-league"]

    def test_list_type_and_window(self, client, repo):
        seed(repo, "champs-near", 3, event_type="tournament")
        seed(repo, "champs-far", 10, event_type="tournament")
        seed(repo, "weekly", 2, event_type="weekly")
        res = client.get("/events", params={"type": "tournament", "window": "next7"})
        assert res.status_code == 200
        assert [e["id"] for e in res.json()] == ["champs-near"]

    def test_list_game_tag(self, client, repo):
        seed(repo, "mtg", 1, game_tags=["Magic: The Gathering"])
        seed(repo, "pkmn", 2, game_tags=["Pokémon TCG"])
        seed(repo, "untagged", 3, game_tags=None)
        res = client.get("/events", params={"game": "Pokémon TCG"})
        assert [e["id"] for e in res.json()] == ["pkmn"]

    def test_list_invalid_type_param(self, client):
        res = client.get("/events", params={"type": "league"})
        assert res.status_code == 400
        assert res.json()["error"].startswith("type must be")

    def test_list_invalid_window_param(self, client):
        res = client.get("/events", params={"window": "next90"})
        assert res.status_code == 422
        assert res.json()["error"] == "ValidationError"

    def test_get_not_found(self, client):
        res = client.get("/events/nope")
        assert res.status_code == 404
        assert res.json() == {"error": "Event not found"}

    def test_admin_list_includes_past(self, client, repo):
        seed(repo, "past", -3)
        seed(repo, "future", 3)
        res = client.get("/admin/events", headers=ADMIN_HEADERS)
        assert res.status_code == 200
        assert [e["id"] for e in res.json()] == ["past", "future"]


class TestUpdate:
    def test_partial_update(self, client, repo):
        seed(repo, "fnm", 2, title="FNM", description="Standard", entry_fee="$10")
        res = client.put("/events/fnm", json={"title": "FNM Pioneer"}, headers=ADMIN_HEADERS)
        assert res.status_code == 200
        updated = res.json()
        assert updated["title"] == "FNM Pioneer"
        assert updated["description"] == "Standard"
        assert updated["entry_fee"] == "$10"

    def test_explicit_null_clears_optional_field(self, client, repo):
        seed(repo, "fnm", 2, description="Standard")
        res = client.put("/events/fnm", json={"description": None}, headers=ADMIN_HEADERS)
        assert res.status_code == 200
        assert res.json()["description"] is None

    def test_null_required_field_rejected(self, client, repo):
        seed(repo, "fnm", 2)
        for field in ("title", "start_datetime", "event_type"):
            res = client.put("/events/fnm", json={field: None}, headers=ADMIN_HEADERS)
            assert res.status_code == 422, field

    def test_update_missing_is_not_found_and_creates_nothing(self, client, repo):
        res = client.put("/events/ghost", json={"title": "Boo"}, headers=ADMIN_HEADERS)
        assert res.status_code == 404
        assert res.json() == {"error": "Event not found"}
        assert repo.get("ghost") is None

    def test_update_ignores_id_in_body(self, client, repo):
        seed(repo, "fnm", 2)
        res = client.put("/events/fnm", json={"id": "other", "entry_fee": "$8"}, headers=ADMIN_HEADERS)
        assert res.status_code == 200
        assert res.json()["id"] == "fnm"
        assert repo.get("other") is None


class TestDelete:
    def test_delete_returns_prior_row(self, client, repo):
        seed(repo, "gone", 2, title="Going away")
        res = client.delete("/events/gone", headers=ADMIN_HEADERS)
        assert res.status_code == 200
        assert res.json()["title"] == "Going away"

        assert client.get("/events/gone").status_code == 404
        again = client.delete("/events/gone", headers=ADMIN_HEADERS)
        assert again.status_code == 404
        assert again.json() == {"error": "Event not found"}

    def test_delete_missing_is_noop(self, client, repo):
        seed(repo, "stay", 2)
        assert client.delete("/events/ghost", headers=ADMIN_HEADERS).status_code == 404
        assert [e["id"] for e in repo.list_all()] == ["stay"]


class TestMethodNotAllowed:
    def test_collection(self, client):
        res = client.delete("/events")
        assert res.status_code == 405
        assert res.json() == {"error": "Method not allowed"}
        allow = {m.strip() for m in res.headers["allow"].split(",")}
        assert {"GET", "POST"} <= allow

    def test_item_lists_every_method(self, client):
        res = client.patch("/events/fnm", json={})
        assert res.status_code == 405
        allow = {m.strip() for m in res.headers["allow"].split(",")}
        assert {"GET", "PUT", "DELETE"} <= allow
        assert "POST" not in allow

    def test_admin_collection(self, client):
        res = client.put("/admin/events", json={})
        assert res.status_code == 405
        allow = {m.strip() for m in res.headers["allow"].split(",")}
        assert "GET" in allow
        assert not allow & {"POST", "PUT", "DELETE"}

    def test_allow_computed_from_declared_routes(self):
        # Independent of how the app stores included routers
        assert {"GET", "PUT", "DELETE"} <= set(_allowed_methods("/events/any-id"))
        assert {"GET", "POST"} <= set(_allowed_methods("/events"))
        assert "" not in _allowed_methods("/events")

    def test_allow_keeps_methods_reported_by_route(self):
        assert "OPTIONS" in _allowed_methods("/nowhere", "OPTIONS")


class TestStoreFailures:
    def test_unconfigured_store(self, client):
        app.dependency_overrides[get_gateway] = lambda: Gateway(
            StoreConfig(url="https://store.test"), lambda url, key: InMemoryRepository()
        )
        res = client.get("/events")
        assert res.status_code == 500
        assert res.json() == {"error": ConfigurationError.default_message}

        res = client.post("/events", json=create_event_payload(), headers=ADMIN_HEADERS)
        assert res.status_code == 500

    def test_elevated_key_missing_only_breaks_writes(self, client):
        config = StoreConfig(url="https://store.test", restricted_key="anon-key")
        app.dependency_overrides[get_gateway] = lambda: Gateway(
            config, lambda url, key: InMemoryRepository()
        )
        assert client.get("/events").status_code == 200
        res = client.delete("/events/x", headers=ADMIN_HEADERS)
        assert res.status_code == 500
        assert res.json()["error"] == ConfigurationError.default_message

    def test_store_error_passes_message_through(self, client):
        class BrokenRepository(InMemoryRepository):
            def list_from(self, start):
                raise StoreError('relation "public.events" does not exist')

        app.dependency_overrides[get_gateway] = lambda: Gateway(
            StoreConfig(url="u", restricted_key="k"), lambda url, key: BrokenRepository()
        )
        res = client.get("/events")
        assert res.status_code == 500
        assert res.json() == {"error": 'relation "public.events" does not exist'}
