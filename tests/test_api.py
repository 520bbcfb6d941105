import csv
import io
import json

import anyio
import pytest
from httpx import ASGITransport, AsyncClient

from teamroster.api import _snapshot_event, create_app
from teamroster.models import PlayerRecord
from teamroster.settings import Settings


def _settings(**overrides) -> Settings:
    values = {"db_path": None, "team_name": "Serie 081", "jersey_autofill": "preserve", "list_limit": 500}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
async def client(tmp_path):
    app = create_app(db_path=tmp_path / "roster.sqlite", settings=_settings())
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


def _player(name: str = "Maria Lopez", number: str = "7", **overrides) -> dict:
    payload = {
        "name": name,
        "jerseyName": name.split()[-1].upper(),
        "number": number,
        "size": "M",
        "position": "Shortstop",
        "notes": "",
    }
    payload.update(overrides)
    return payload


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_create_player_returns_record(client: AsyncClient):
    resp = await client.post("/players", json=_player())
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Maria Lopez"
    assert data["jerseyName"] == "LOPEZ"
    assert data["positionCode"] == "SS"
    assert data["notes"] is None
    assert data["id"]

    fetched = await client.get(f"/players/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["number"] == "7"


@pytest.mark.anyio
async def test_create_player_derives_missing_jersey_name(client: AsyncClient):
    payload = _player(name="Ana Ruiz", number="12")
    payload.pop("jerseyName")
    resp = await client.post("/players", json=payload)
    assert resp.status_code == 201
    assert resp.json()["jerseyName"] == "RUIZ"


@pytest.mark.anyio
async def test_create_player_reports_field_errors(client: AsyncClient):
    resp = await client.post(
        "/players",
        json={"name": "Ana", "number": "123", "size": "XXXL", "position": ""},
    )
    assert resp.status_code == 422
    errors = resp.json()["detail"]["errors"]
    assert errors == {
        "name": "Please enter both first and last name",
        "jersey_name": "Jersey name is required",
        "number": "Number must be 1-2 digits",
        "size": "Please select a valid size",
        "position": "Position is required",
    }
    listing = await client.get("/players")
    assert listing.json()["count"] == 0


@pytest.mark.anyio
async def test_duplicate_number_conflicts(client: AsyncClient):
    assert (await client.post("/players", json=_player())).status_code == 201
    resp = await client.post("/players", json=_player(name="Ana Ruiz"))
    assert resp.status_code == 409
    assert resp.json()["detail"] == {"message": "Jersey number 7 is already taken.", "number": "7"}

    leading_zero = await client.post("/players", json=_player(name="Ana Ruiz", number="07"))
    assert leading_zero.status_code == 201


@pytest.mark.anyio
async def test_list_players_sorts_numbers_as_text(client: AsyncClient):
    for number in ("9", "10", "2"):
        assert (await client.post("/players", json=_player(name=f"Player N{number}", number=number))).status_code == 201

    unsorted = await client.get("/players")
    assert [p["number"] for p in unsorted.json()["players"]] == ["9", "10", "2"]

    asc = await client.get("/players", params={"sort_by": "number"})
    body = asc.json()
    assert body["sort_by"] == "number"
    assert body["sort_direction"] == "asc"
    assert [p["number"] for p in body["players"]] == ["10", "2", "9"]

    desc = await client.get("/players", params={"sort_by": "number", "sort_direction": "desc"})
    assert [p["number"] for p in desc.json()["players"]] == ["9", "2", "10"]

    bad = await client.get("/players", params={"sort_by": "salary"})
    assert bad.status_code == 400


@pytest.mark.anyio
async def test_update_player_keeps_own_number(client: AsyncClient):
    created = (await client.post("/players", json=_player())).json()
    resp = await client.put(f"/players/{created['id']}", json=_player(size="XL", notes="Left-handed"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["size"] == "XL"
    assert data["notes"] == "Left-handed"
    assert data["id"] == created["id"]


@pytest.mark.anyio
async def test_update_to_taken_number_suggests_swap(client: AsyncClient):
    first = (await client.post("/players", json=_player())).json()
    await client.post("/players", json=_player(name="Ana Ruiz", number="8"))
    resp = await client.patch(f"/players/{first['id']}", json={"number": "8"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["message"] == "Jersey 8 is already taken. Ask whether they want to swap."


@pytest.mark.anyio
async def test_patch_player_merges_fields(client: AsyncClient):
    created = (await client.post("/players", json=_player())).json()
    resp = await client.patch(f"/players/{created['id']}", json={"position": "Pitcher"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["position"] == "Pitcher"
    assert data["positionCode"] == "P"
    assert data["jerseyName"] == "LOPEZ"

    missing = await client.patch("/players/unknown", json={"position": "Pitcher"})
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_delete_player(client: AsyncClient):
    created = (await client.post("/players", json=_player())).json()
    resp = await client.delete(f"/players/{created['id']}")
    assert resp.status_code == 204
    assert (await client.get(f"/players/{created['id']}")).status_code == 404
    again = await client.delete(f"/players/{created['id']}")
    assert again.status_code == 404


@pytest.mark.anyio
async def test_export_csv(client: AsyncClient):
    await client.post("/players", json=_player(notes="Needs long sleeves"))
    resp = await client.get("/players/export.csv")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["name", "jersey_name", "number", "size", "position", "position_code", "notes"]
    assert rows[1] == ["Maria Lopez", "LOPEZ", "7", "M", "Shortstop", "SS", "Needs long sleeves"]


@pytest.mark.anyio
async def test_ui_empty_state(client: AsyncClient):
    resp = await client.get("/ui")
    assert resp.status_code == 200
    assert "Serie 081 - Jersey Registration" in resp.text
    assert "0 players registered" in resp.text
    assert "No players registered yet." in resp.text


@pytest.mark.anyio
async def test_ui_register_flow(client: AsyncClient):
    form = await client.get("/ui/players/new")
    assert form.status_code == 200
    assert "Player information" in form.text

    resp = await client.post(
        "/ui/players",
        data={
            "name": "Maria Lopez",
            "jersey_name": "LOPEZ",
            "number": "7",
            "size": "M",
            "position": "Shortstop",
            "notes": "",
        },
    )
    assert resp.status_code == 303
    location = resp.headers["location"]
    assert location.startswith("/ui?")

    page = await client.get(location)
    assert "Thanks for registering!" in page.text
    assert "1 players registered" in page.text
    assert "<td>SS</td>" in page.text


@pytest.mark.anyio
async def test_ui_invalid_submit_preserves_input(client: AsyncClient):
    resp = await client.post(
        "/ui/players",
        data={"name": "Maria Lopez", "jersey_name": "LOPEZ", "number": "123", "size": "M", "position": "Pitcher"},
    )
    assert resp.status_code == 422
    assert "Number must be 1-2 digits" in resp.text
    assert 'value="123"' in resp.text
    assert 'value="Maria Lopez"' in resp.text


@pytest.mark.anyio
async def test_ui_duplicate_number_shows_message(client: AsyncClient):
    await client.post("/players", json=_player())
    resp = await client.post(
        "/ui/players",
        data={"name": "Ana Ruiz", "jersey_name": "RUIZ", "number": "7", "size": "S", "position": "Catcher"},
    )
    assert resp.status_code == 409
    assert "Jersey number 7 is already taken." in resp.text
    assert 'value="Ana Ruiz"' in resp.text


@pytest.mark.anyio
async def test_ui_delete_requires_confirmation(client: AsyncClient):
    created = (await client.post("/players", json=_player())).json()
    confirm = await client.get(f"/ui/players/{created['id']}/delete")
    assert confirm.status_code == 200
    assert "Are you sure?" in confirm.text
    assert "This action cannot be undone." in confirm.text
    assert (await client.get(f"/players/{created['id']}")).status_code == 200

    resp = await client.post(f"/ui/players/{created['id']}/delete")
    assert resp.status_code == 303
    page = await client.get(resp.headers["location"])
    assert "Player deleted successfully" in page.text
    assert (await client.get(f"/players/{created['id']}")).status_code == 404


@pytest.mark.anyio
async def test_ui_sort_headers_cycle(client: AsyncClient):
    await client.post("/players", json=_player())
    resp = await client.get("/ui", params={"sort_by": "number", "sort_direction": "asc"})
    assert "Number ▲" in resp.text
    assert "sort_by=number&amp;sort_direction=desc" in resp.text

    resp = await client.get("/ui", params={"sort_by": "number", "sort_direction": "desc"})
    assert "Number ▼" in resp.text
    assert 'href="/ui">Number' in resp.text


def test_snapshot_event_formats_players():
    player = PlayerRecord(
        id="abc",
        name="Maria Lopez",
        jersey_name="LOPEZ",
        number="7",
        size="M",
        position="Shortstop",
    )
    event = _snapshot_event([player])
    assert event.startswith("event: snapshot\ndata: ")
    assert event.endswith("\n\n")
    payload = json.loads(event.split("data: ", 1)[1])
    assert payload[0]["jerseyName"] == "LOPEZ"
    assert payload[0]["positionCode"] == "SS"


@pytest.mark.anyio
async def test_list_limit_caps_listing_but_not_number_check(tmp_path):
    app = create_app(db_path=tmp_path / "roster.sqlite", settings=_settings(list_limit=2))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        created = []
        for number in ("1", "2", "3"):
            resp = await client.post("/players", json=_player(name=f"Player N{number}", number=number))
            assert resp.status_code == 201
            created.append(resp.json()["id"])

        listing = (await client.get("/players")).json()
        assert listing["count"] == 3
        assert listing["returned"] == 2
        assert [p["number"] for p in listing["players"]] == ["1", "2"]

        duplicate = await client.post("/players", json=_player(number="3"))
        assert duplicate.status_code == 409

        patched = await client.patch(f"/players/{created[-1]}", json={"size": "L"})
        assert patched.status_code == 200

        page = await client.get("/ui")
        assert "3 players registered" in page.text


@pytest.mark.anyio
async def test_create_accepts_numeric_json_values(client: AsyncClient):
    resp = await client.post("/players", json=_player(number=7))
    assert resp.status_code == 201
    assert resp.json()["number"] == "7"

    bad = await client.post("/players", json=_player(name="Ana Ruiz", number=123))
    assert bad.status_code == 422
    assert bad.json()["detail"] == {"errors": {"number": "Number must be 1-2 digits"}}


@pytest.mark.anyio
async def test_patch_null_clears_notes(client: AsyncClient):
    created = (await client.post("/players", json=_player(notes="Left-handed"))).json()
    assert created["notes"] == "Left-handed"

    untouched = await client.patch(f"/players/{created['id']}", json={"size": "L"})
    assert untouched.json()["notes"] == "Left-handed"

    cleared = await client.patch(f"/players/{created['id']}", json={"notes": None})
    assert cleared.status_code == 200
    assert cleared.json()["notes"] is None


@pytest.mark.anyio
async def test_stream_pushes_snapshot_after_write(tmp_path):
    # httpx's ASGITransport buffers the whole body, so drive the endless
    # event stream with raw ASGI callables.
    app = create_app(db_path=tmp_path / "roster.sqlite", settings=_settings())
    store = app.state.player_store
    chunks_in, chunks_out = anyio.create_memory_object_stream(10)
    request_sent = False
    disconnected = anyio.Event()

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.start":
            assert message["status"] == 200
        elif message["type"] == "http.response.body" and message.get("body"):
            await chunks_in.send(message["body"].decode())

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/players/stream",
        "raw_path": b"/players/stream",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }

    def _payload(frame: str) -> list:
        assert frame.startswith("event: snapshot\ndata: ")
        return json.loads(frame.split("data: ", 1)[1])

    async with anyio.create_task_group() as tg:
        tg.start_soon(app, scope, receive, send)
        with anyio.fail_after(5):
            assert _payload(await chunks_out.receive()) == []
            store.insert(
                {
                    "name": "Maria Lopez",
                    "jersey_name": "LOPEZ",
                    "number": "7",
                    "size": "M",
                    "position": "Shortstop",
                }
            )
            players = _payload(await chunks_out.receive())
        tg.cancel_scope.cancel()

    assert [p["jerseyName"] for p in players] == ["LOPEZ"]
    assert players[0]["positionCode"] == "SS"
