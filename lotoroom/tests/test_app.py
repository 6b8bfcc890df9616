import asyncio
import pytest
from fastapi.testclient import TestClient
from lotoroom import persistence
from lotoroom import app as app_module
from lotoroom.app import app
from lotoroom.state import new_game, new_room, apply_action

@pytest.fixture(autouse=True)
def _tmp_store(tmp_path, monkeypatch):
    rooms, games = tmp_path / "rooms", tmp_path / "games"
    rooms.mkdir()
    games.mkdir()
    monkeypatch.setattr(persistence, "ROOMS_DIR", rooms)
    monkeypatch.setattr(persistence, "GAMES_DIR", games)

@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c

def _hello(ws, pid, name=None):
    ws.send_json({"kind": "hello", "player_id": pid, "name": name})
    room = ws.receive_json()
    assert room["kind"] == "room"
    return room

def _act(ws, type_, payload=None):
    ws.send_json({"kind": "action", "type": type_, "payload": payload or {}})

def test_create_and_get_room(client):
    r = client.post("/api/rooms", json={"game_type": "loto", "player_id": "H"})
    assert r.status_code == 200
    room = r.json()
    assert len(room["id"]) == 6
    assert room["host_id"] == "H" and room["status"] == "waiting"
    assert client.get(f"/api/rooms/{room['id']}").json()["id"] == room["id"]
    assert client.get("/api/rooms/NOPE00").status_code == 404

def test_bad_game_type(client):
    r = client.post("/api/rooms", json={"game_type": "poker", "player_id": "H"})
    assert r.status_code == 422

def test_tickets_endpoints(client):
    groups = client.get("/api/tickets").json()["groups"]
    assert len(groups) == 8
    t = client.get("/api/tickets/red-1").json()
    assert t["color"] == "red" and len(t["strips"]) == 3
    assert client.get("/api/tickets/red-9").status_code == 404

def test_loto_number_calling(client):
    room = client.post("/api/rooms", json={"game_type": "loto", "player_id": "H"}).json()
    with client.websocket_connect(f"/ws/{room['id']}") as host:
        _hello(host, "H")
        _act(host, "draw_number")
        msg = host.receive_json()
        assert msg["kind"] == "room"
        assert len(msg["room"]["current_numbers"]) == 1
        assert msg["room"]["status"] == "playing"
        with client.websocket_connect(f"/ws/{room['id']}") as guest:
            _hello(guest, "G")
            _act(guest, "draw_number")
            ack = guest.receive_json()
            assert ack == {"kind": "ack", "ok": False, "msg": "invalid_actor"}
            _act(guest, "hit")
            assert guest.receive_json()["msg"] == "no_game"

def test_xidach_round_over_websocket(client):
    room = client.post("/api/rooms", json={"game_type": "xidach", "player_id": "D"}).json()
    rid = room["id"]
    with client.websocket_connect(f"/ws/{rid}") as dealer:
        _hello(dealer, "D")
        assert dealer.receive_json()["state"]["phase"] == "waiting"
        with client.websocket_connect(f"/ws/{rid.lower()}") as alice:
            _hello(alice, "A", name="An")
            alice.receive_json()
            _act(alice, "join")
            assert alice.receive_json()["kind"] == "room"
            view = alice.receive_json()["state"]
            assert view["players"]["A"]["name"] == "An"
            dealer.receive_json()
            dealer.receive_json()

            _act(alice, "start")
            assert alice.receive_json() == {"kind": "ack", "ok": False, "msg": "invalid_actor"}

            _act(dealer, "start")
            dealer.receive_json()
            dealer_view = dealer.receive_json()["state"]
            assert dealer_view["phase"] == "player_turns"
            assert dealer_view["deck_size"] == 48
            assert None not in dealer_view["dealer_cards"]
            assert dealer_view["players"]["A"]["cards"] == [None, None]
            alice.receive_json()
            alice_view = alice.receive_json()["state"]
            assert alice_view["current_turn"] == "A"
            assert None not in alice_view["players"]["A"]["cards"]
            assert alice_view["dealer_cards"] == [None, None]
            assert "deck" not in alice_view

class _Peer:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)

def test_dealer_leaving_hands_over():
    rid = "LEAVE1"
    game = apply_action(new_game(rid, "D"), "A", "join")
    alice = _Peer()
    app_module.rooms[rid] = app_module._ctx(new_room(rid, "D", "xidach"), game)
    app_module.rooms[rid]["peers"][alice] = "A"

    asyncio.run(app_module._leave(rid, "D"))
    room_msg, state_msg = alice.sent
    assert room_msg["room"]["host_id"] == "A"
    assert state_msg["state"]["dealer_id"] == "A"
    assert state_msg["state"]["players"] == {}

    app_module.rooms[rid]["peers"].clear()
    asyncio.run(app_module._leave(rid, "A"))
    assert rid not in app_module.rooms

def test_unknown_room_rejected(client):
    with client.websocket_connect("/ws/ZZZZZZ") as ws:
        ws.send_json({"kind": "hello", "player_id": "X"})
        assert ws.receive_json() == {"kind": "ack", "ok": False, "msg": "Room not found"}

def test_bad_action_message(client):
    room = client.post("/api/rooms", json={"game_type": "loto", "player_id": "H"}).json()
    with client.websocket_connect(f"/ws/{room['id']}") as ws:
        _hello(ws, "H")
        ws.send_text("not json")
        ack = ws.receive_json()
        assert ack["kind"] == "ack" and ack["ok"] is False

def test_save_and_load(client):
    room = client.post("/api/rooms", json={"game_type": "xidach", "player_id": "D"}).json()
    rid = room["id"]
    assert client.post(f"/api/save/{rid}").json() == {"ok": True}
    assert persistence.load_game(rid).dealer_id == "D"
    assert client.post(f"/api/load/{rid}").json() == {"ok": True}
    assert client.post("/api/load/NOSAVE").json()["ok"] is False
    assert client.post("/api/save/NOSAVE").json()["ok"] is False

def test_non_object_messages_get_an_ack(client):
    room = client.post("/api/rooms", json={"game_type": "xidach", "player_id": "D"}).json()
    with client.websocket_connect(f"/ws/{room['id']}") as dealer:
        _hello(dealer, "D")
        dealer.receive_json()
        for raw in ("[1, 2]", '"x"', "5"):
            dealer.send_text(raw)
            ack = dealer.receive_json()
            assert ack["kind"] == "ack" and ack["ok"] is False
        # still connected and still the dealer
        _act(dealer, "reveal_player", {"target_id": ["A"]})
        assert dealer.receive_json() == {"kind": "ack", "ok": False, "msg": "bad_payload"}
        assert app_module.rooms[room["id"]]["game"].dealer_id == "D"

def test_bad_hello_gets_an_ack(client):
    room = client.post("/api/rooms", json={"game_type": "loto", "player_id": "H"}).json()
    with client.websocket_connect(f"/ws/{room['id']}") as ws:
        ws.send_text("[1, 2]")
        assert ws.receive_json() == {"kind": "ack", "ok": False, "msg": "bad hello"}

def test_save_and_load_ignore_case(client):
    room = client.post("/api/rooms", json={"game_type": "xidach", "player_id": "D"}).json()
    rid = room["id"]
    assert client.post(f"/api/save/{rid.lower()}").json() == {"ok": True}
    assert client.post(f"/api/load/{rid.lower()}").json() == {"ok": True}

def test_second_save_writes_changed_fields(client):
    room = client.post("/api/rooms", json={"game_type": "xidach", "player_id": "D"}).json()
    rid = room["id"]
    client.post(f"/api/save/{rid}")
    ctx = app_module.rooms[rid]
    ctx["game"] = apply_action(ctx["game"], "A", "join", {"name": "An"})
    assert client.post(f"/api/save/{rid}").json() == {"ok": True}
    stored = persistence.load_game(rid)
    assert stored.players["A"].name == "An"
    assert stored == ctx["game"]
