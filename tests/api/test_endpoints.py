"""Tests for API endpoints."""

from dataclasses import replace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.main import app
from api.routes import game as game_routes
from table_engine.cards import Shoe


@pytest_asyncio.fixture
async def client():
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def session(client):
    """Seat a player and return the headers that identify them."""
    response = await client.post("/api/game/new")
    return {"X-Session-ID": response.json()["session_id"]}


def stack_shoe(headers, *cards):
    """Replace the live table's shoe so the next deal is predictable."""
    table = game_routes._tables[headers["X-Session-ID"]]
    table.state = replace(table.state, shoe=Shoe.from_cards(cards))


async def play_out(client, headers):
    """Decline insurance and stand until the round is over."""
    data = (await client.get("/api/game/state", headers=headers)).json()
    while data["phase"] != "game_over":
        if data["phase"] == "insurance_offer":
            response = await client.post("/api/game/insurance", json={"amount": 0}, headers=headers)
        else:
            response = await client.post("/api/game/action", json={"action": "stand"}, headers=headers)
        assert response.status_code == 200
        data = response.json()
    return data


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health check endpoint."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestSession:
    """Opening, resuming and closing a seat."""

    @pytest.mark.asyncio
    async def test_new_game(self, client):
        response = await client.post("/api/game/new")
        assert response.status_code == 200
        assert "session_id" in response.json()

    @pytest.mark.asyncio
    async def test_new_game_reuses_valid_session(self, client, session):
        response = await client.post("/api/game/new", headers=session)
        assert response.json()["session_id"] == session["X-Session-ID"]

    @pytest.mark.asyncio
    async def test_unknown_session(self, client):
        response = await client.get("/api/game/state", headers={"X-Session-ID": "made-up"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_header(self, client):
        response = await client.get("/api/game/state")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_end_game(self, client, session):
        response = await client.delete("/api/game/session", headers=session)
        assert response.status_code == 204

        response = await client.get("/api/game/state", headers=session)
        assert response.status_code == 404


class TestRound:
    """Betting, dealing and playing through the API."""

    @pytest.mark.asyncio
    async def test_initial_state(self, client, session):
        response = await client.get("/api/game/state", headers=session)
        assert response.status_code == 200
        data = response.json()

        assert data["phase"] == "betting"
        assert data["chips"] == 1000
        assert data["bet"] == 0
        assert "place_bet" in data["legal_actions"]
        assert data["dealer_hand"]["cards"] == []

    @pytest.mark.asyncio
    async def test_place_and_clear_bet(self, client, session):
        response = await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        assert response.status_code == 200
        assert response.json()["bet"] == 100

        response = await client.post("/api/game/clear-bet", headers=session)
        assert response.status_code == 200
        assert response.json()["bet"] == 0

    @pytest.mark.asyncio
    async def test_bet_must_be_positive(self, client, session):
        response = await client.post("/api/game/bet", json={"amount": 0}, headers=session)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_bet_over_bankroll(self, client, session):
        response = await client.post("/api/game/bet", json={"amount": 5000}, headers=session)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_deal_without_bet(self, client, session):
        response = await client.post("/api/game/deal", headers=session)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_hit_during_betting(self, client, session):
        response = await client.post("/api/game/action", json={"action": "hit"}, headers=session)
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot hit now"

    @pytest.mark.asyncio
    async def test_unknown_action(self, client, session):
        response = await client.post("/api/game/action", json={"action": "fold"}, headers=session)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_full_round(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        response = await client.post("/api/game/deal", headers=session)
        assert response.status_code == 200
        assert len(response.json()["player_hand"]["cards"]) == 2

        data = await play_out(client, session)
        assert data["result"] in ("win", "lose", "push", "blackjack")
        assert data["dealer_revealed"] is True
        assert data["stats"]["hands_played"] == 1

        response = await client.post("/api/game/new-round", headers=session)
        assert response.status_code == 200
        assert response.json()["phase"] == "betting"

    @pytest.mark.asyncio
    async def test_hole_card_hidden(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "10S", "9H", "7D", "8C")
        data = (await client.post("/api/game/deal", headers=session)).json()

        assert data["phase"] == "player_turn"
        assert data["dealer_revealed"] is False
        assert [c["rank"] for c in data["dealer_hand"]["cards"]] == ["9"]
        assert data["dealer_showing"]["rank"] == "9"

    @pytest.mark.asyncio
    async def test_natural_pays_three_to_two(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "AS", "9H", "KD", "7C")
        data = (await client.post("/api/game/deal", headers=session)).json()

        assert data["phase"] == "game_over"
        assert data["result"] == "blackjack"
        assert data["chips"] == 1150

    @pytest.mark.asyncio
    async def test_insurance_pays_on_dealer_natural(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "10S", "AH", "7D", "KC")
        data = (await client.post("/api/game/deal", headers=session)).json()
        assert data["phase"] == "insurance_offer"
        assert data["max_insurance"] == 50

        response = await client.post("/api/game/insurance", json={"amount": 50}, headers=session)
        data = response.json()
        assert data["phase"] == "player_turn"
        assert data["insurance_bet"] == 50
        assert data["chips"] == 850

        response = await client.post("/api/game/action", json={"action": "stand"}, headers=session)
        data = response.json()
        assert data["phase"] == "game_over"
        assert data["result"] == "lose"
        assert data["chips"] == 1000

    @pytest.mark.asyncio
    async def test_reset_with_bankroll(self, client, session):
        response = await client.post("/api/game/reset", json={"bankroll": 500}, headers=session)
        assert response.status_code == 200
        data = response.json()
        assert data["chips"] == 500
        assert data["phase"] == "betting"


class TestAdvice:
    """Basic strategy hints."""

    @pytest.mark.asyncio
    async def test_no_advice_while_betting(self, client, session):
        response = await client.get("/api/game/advice", headers=session)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_advice_on_hard_16(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "10S", "10H", "6D", "7C")
        await client.post("/api/game/deal", headers=session)

        response = await client.get("/api/game/advice", headers=session)
        assert response.status_code == 200
        assert response.json() == {"action": "surrender", "code": "SURRENDER/OR/HIT"}


class TestHistory:
    """Hand history listing and replay."""

    @pytest.mark.asyncio
    async def test_empty_history(self, client, session):
        response = await client.get("/api/history", headers=session)
        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_finished_round_is_recorded(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        await client.post("/api/game/deal", headers=session)
        final = await play_out(client, session)

        entries = (await client.get("/api/history", headers=session)).json()
        assert len(entries) == 1
        summary = entries[0]
        assert summary["result"] == final["result"]
        assert summary["bet"] == 100
        assert summary["steps"] >= 1

        response = await client.get(f"/api/history/{summary['id']}", headers=session)
        assert response.status_code == 200
        assert len(response.json()["player_hand"]["cards"]) >= 2

        response = await client.get(f"/api/history/{summary['id']}/steps/0", headers=session)
        assert response.status_code == 200
        step = response.json()
        assert step["action"] == "deal"
        assert step["at_start"] is True
        assert step["total"] == summary["steps"]

    @pytest.mark.asyncio
    async def test_step_out_of_range(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        await client.post("/api/game/deal", headers=session)
        await play_out(client, session)

        entry_id = (await client.get("/api/history", headers=session)).json()[0]["id"]
        response = await client.get(f"/api/history/{entry_id}/steps/99", headers=session)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_entry(self, client, session):
        response = await client.get("/api/history/12345", headers=session)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_entry_without_steps(self, client, session):
        """A stored hand with no step log cannot be replayed."""
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        await client.post("/api/game/deal", headers=session)
        await play_out(client, session)

        table = game_routes._tables[session["X-Session-ID"]]
        exported = table.history.export()
        exported[0]["steps"] = []
        table.history.load(exported)

        entry_id = exported[0]["id"]
        response = await client.get(f"/api/history/{entry_id}/steps/0", headers=session)
        assert response.status_code == 404
        assert "no recorded steps" in response.json()["detail"]


class TestAchievements:
    """Unlocks reported after a settled round."""

    @pytest.mark.asyncio
    async def test_natural_unlocks(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "AS", "9H", "KD", "7C")
        data = (await client.post("/api/game/deal", headers=session)).json()

        assert {a["id"] for a in data["new_achievements"]} == {"first_win", "first_blackjack"}
        assert data["achievements_unlocked"] == 2

        data = (await client.post("/api/game/new-round", headers=session)).json()
        assert data["new_achievements"] == []
        assert data["achievements_unlocked"] == 2

    @pytest.mark.asyncio
    async def test_unlocks_survive_table_rebuild(self, client, session):
        """A table rebuilt from the session keeps what was unlocked."""
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "AS", "9H", "KD", "7C")
        await client.post("/api/game/deal", headers=session)

        game_routes._tables.pop(session["X-Session-ID"])
        data = (await client.get("/api/game/state", headers=session)).json()
        assert data["achievements_unlocked"] == 2
        assert data["chips"] == 1150

    @pytest.mark.asyncio
    async def test_unlocks_survive_new_game(self, client, session):
        await client.post("/api/game/bet", json={"amount": 100}, headers=session)
        stack_shoe(session, "AS", "9H", "KD", "7C")
        await client.post("/api/game/deal", headers=session)

        await client.post("/api/game/new", headers=session)
        data = (await client.get("/api/game/state", headers=session)).json()
        assert data["chips"] == 1000
        assert data["achievements_unlocked"] == 2
