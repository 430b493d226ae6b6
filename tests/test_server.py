"""End-to-end tests for the FastAPI realtime endpoint."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from xorooms.config import Settings
from xorooms.server import create_app


@pytest.fixture
def client():
    with TestClient(create_app(Settings())) as test_client:
        yield test_client


def test_health_check_reports_room_count(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "rooms": 0}


def test_two_players_play_to_a_win_and_rematch(client):
    with client.websocket_connect("/") as creator, client.websocket_connect("/ws") as joiner:
        creator.send_json({"type": "create_room"})
        created = creator.receive_json()
        assert created["type"] == "room_created"
        room_id = created["roomId"]
        assert len(room_id) == 5

        joiner.send_json({"type": "join_room", "roomId": room_id.lower()})
        assert creator.receive_json() == {"type": "game_start", "roomId": room_id}
        assert joiner.receive_json() == {"type": "game_start", "roomId": room_id}

        moves = [(creator, 0, "X"), (joiner, 3, "O"), (creator, 1, "X"), (joiner, 4, "O"), (creator, 2, "X")]
        for sender, index, symbol in moves:
            sender.send_json(
                {"type": "make_move", "roomId": room_id, "index": index, "symbol": symbol}
            )
            for ws in (creator, joiner):
                event = ws.receive_json()
                assert event["type"] == "move_made"
                assert (event["index"], event["symbol"]) == (index, symbol)

        for ws in (creator, joiner):
            assert ws.receive_json() == {"type": "game_over", "winner": "X", "line": [0, 1, 2]}

        creator.send_json({"type": "restart", "roomId": room_id})
        for ws in (creator, joiner):
            assert ws.receive_json() == {"type": "restart_game", "turn": "X"}

        inspect = client.get(f"/api/room/{room_id}")
        assert inspect.json() == {
            "roomId": room_id,
            "players": 2,
            "available": False,
            "turn": "X",
        }


def test_join_unknown_room_returns_error(client):
    with client.websocket_connect("/") as ws:
        ws.send_json({"type": "join_room", "roomId": "nope1"})
        assert ws.receive_json() == {"type": "error", "message": "Room not found"}

        # The connection stays usable after a rejection or a malformed frame.
        ws.send_text("{broken")
        ws.send_json({"type": "create_room"})
        assert ws.receive_json()["type"] == "room_created"


def test_third_player_is_turned_away(client):
    with client.websocket_connect("/") as first, client.websocket_connect("/") as second:
        first.send_json({"type": "create_room"})
        room_id = first.receive_json()["roomId"]
        second.send_json({"type": "join_room", "roomId": room_id})
        first.receive_json()
        second.receive_json()

        with client.websocket_connect("/") as third:
            third.send_json({"type": "join_room", "roomId": room_id})
            assert third.receive_json() == {"type": "error", "message": "Room full"}


def test_disconnect_notifies_peer_and_last_leave_removes_room(client):
    with client.websocket_connect("/") as first:
        first.send_json({"type": "create_room"})
        room_id = first.receive_json()["roomId"]

        with client.websocket_connect("/") as second:
            second.send_json({"type": "join_room", "roomId": room_id})
            first.receive_json()
            second.receive_json()

        assert first.receive_json() == {"type": "user_left"}
        assert client.get(f"/api/room/{room_id}").json()["players"] == 1

        first.send_json({"type": "leave_room", "roomId": room_id})
        # Round-trip a create so the leave has been processed before inspecting.
        first.send_json({"type": "create_room"})
        first.receive_json()

    missing = client.get(f"/api/room/{room_id}")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Room not found"


def test_static_directory_is_served_alongside_realtime_endpoint(tmp_path):
    (tmp_path / "index.html").write_text("<h1>xorooms</h1>")
    app = create_app(Settings(static_dir=str(tmp_path)))
    with TestClient(app) as static_client:
        page = static_client.get("/")
        assert page.status_code == 200
        assert "xorooms" in page.text

        assert static_client.get("/healthz").status_code == 200
        with static_client.websocket_connect("/") as ws:
            ws.send_json({"type": "create_room"})
            assert ws.receive_json()["type"] == "room_created"
