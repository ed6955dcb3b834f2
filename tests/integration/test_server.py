import asyncio

import pytest
from fastapi.testclient import TestClient

from server.app import app
from server.registry import GameRegistry
from server.runner import GameRunner, SessionStatus
from tycoon.agents import HeuristicAgent
from tycoon.game import create_game
from tycoon.phases import Phase
from tycoon.player import Player
from tycoon.settings import GameSettings

HUMANS = [{"name": "Alice"}, {"name": "Bob"}]


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _create_game(client: TestClient, players=None, **extra) -> str:
    resp = client.post("/games", json={"players": players or HUMANS, "settings": {"seed": 7}, **extra})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert isinstance(data["game_id"], str)
    return data["game_id"]


def test_create_game_and_snapshot(client):
    gid = _create_game(client)

    snap = client.get(f"/games/{gid}/snapshot")
    assert snap.status_code == 200
    data = snap.json()

    assert data["phase"] == "rolling"
    assert data["current_player_id"] == 0
    assert data["active_player_id"] == 0
    assert [p["name"] for p in data["players"]] == ["Alice", "Bob"]
    assert data["settings"]["seed"] == 7
    assert len(data["spaces"]) == 40


def test_create_game_rejects_bad_roster(client):
    resp = client.post("/games", json={"players": [{"name": "Solo"}]})
    assert resp.status_code == 422


def test_create_game_rejects_bad_settings(client):
    resp = client.post("/games", json={"players": HUMANS, "settings": {"starting_cash": -5}})
    assert resp.status_code == 422


def test_open_session_started_explicitly(client):
    gid = _create_game(client, autostart=False)
    assert client.get(f"/games/{gid}/snapshot").json()["phase"] == "setup"

    resp = client.post(f"/games/{gid}/start")
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"
    assert client.get(f"/games/{gid}/snapshot").json()["phase"] == "rolling"

    assert client.post(f"/games/{gid}/start").status_code == 409


def test_legal_commands_endpoint(client):
    gid = _create_game(client)

    resp = client.get(f"/games/{gid}/commands", params={"player_id": 0})
    assert resp.status_code == 200
    data = resp.json()
    assert data["game_id"] == gid
    assert "rollDice" in data["commands"]

    other = client.get(f"/games/{gid}/commands", params={"player_id": 1}).json()
    assert other["commands"] == []


def test_command_accepted(client):
    gid = _create_game(client)

    resp = client.post(f"/games/{gid}/commands", json={"player_id": 0, "command": "takeLoan", "args": [100]})
    assert resp.status_code == 200
    data = resp.json()
    assert data["accepted"] is True
    assert data["snapshot"]["players"][0]["cash"] == 1600


def test_illegal_command_is_noop(client):
    gid = _create_game(client)
    before = client.get(f"/games/{gid}/snapshot").json()

    resp = client.post(f"/games/{gid}/commands", json={"player_id": 1, "command": "rollDice"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["accepted"] is False
    assert data["snapshot"] == before


def test_list_and_close_games(client):
    gid = _create_game(client)

    sessions = client.get("/games").json()
    assert any(s["game_id"] == gid and s["status"] == "active" for s in sessions)

    assert client.delete(f"/games/{gid}").status_code == 200
    assert client.get(f"/games/{gid}/snapshot").status_code == 404
    assert client.delete(f"/games/{gid}").status_code == 404


def test_snapshot_404_for_unknown_game(client):
    resp = client.get("/games/doesnotexist/snapshot")
    assert resp.status_code == 404


def test_websocket_streams_initial_snapshot(client):
    gid = _create_game(client)

    with client.websocket_connect(f"/ws/games/{gid}") as ws:
        first = ws.receive_json()
        assert first["type"] == "snapshot"
        assert first["game_id"] == gid
        assert first["snapshot"]["phase"] == "rolling"


def test_websocket_command_broadcasts_snapshot(client):
    gid = _create_game(client)

    with client.websocket_connect(f"/ws/games/{gid}") as ws:
        ws.receive_json()
        ws.send_json({"player_id": 0, "command": "takeLoan", "args": [100]})
        update = ws.receive_json()
        assert update["type"] == "snapshot"
        assert update["snapshot"]["players"][0]["cash"] == 1600

        ws.send_json({"player_id": 1, "command": "rollDice"})
        assert ws.receive_json() == {"type": "rejected", "command": "rollDice"}


def test_runner_steps_computer_player():
    async def scenario():
        players = [Player(0, "Bot", is_ai=True), Player(1, "Alice")]
        game = create_game(GameSettings(seed=3), players)
        game.start()
        runner = GameRunner("g1", game, agents={0: HeuristicAgent(0, "Bot")}, turn_tick_ms=0, negotiation_tick_ms=0)

        assert await runner.step()
        assert game.dice_roll is not None

        game.current_player_index = 1
        game.dice_roll = None
        game.phase = Phase.ROLLING
        assert not await runner.step()

    asyncio.run(scenario())


def test_runner_drops_subscriber_that_falls_behind():
    async def scenario():
        game = create_game(GameSettings(seed=5), [Player(0, "Alice"), Player(1, "Bob")])
        game.start()
        runner = GameRunner("g2", game, turn_tick_ms=0, negotiation_tick_ms=0, client_queue_size=1)

        queue = await runner.subscribe()
        assert queue.maxsize == 1
        assert runner.subscriber_count == 1

        accepted, _ = await runner.submit(0, "rollDice")

        assert accepted
        assert queue.qsize() == 1
        assert not runner.is_subscribed(queue)
        assert runner.subscriber_count == 0
        await runner.stop()

    asyncio.run(scenario())


def test_registry_plays_computer_only_game():
    async def scenario():
        registry = GameRegistry(turn_tick_ms=0, negotiation_tick_ms=0)
        players = [Player(0, "Bot A", is_ai=True), Player(1, "Bot B", is_ai=True)]
        runner = await registry.create_game(players, GameSettings(seed=11))
        assert runner.status == SessionStatus.ACTIVE

        for _ in range(2000):
            if runner.game.turn_number > 1:
                break
            await asyncio.sleep(0.001)
        turn = runner.game.turn_number
        await registry.close_all()
        assert runner.status == SessionStatus.CLOSED
        return turn

    assert asyncio.run(scenario()) > 1
