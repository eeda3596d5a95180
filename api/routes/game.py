"""Game API endpoints."""

import logging
from typing import Annotated, Callable

from fastapi import APIRouter, Header, HTTPException

from api.schemas import (
    AchievementResponse,
    ActionRequest,
    AdviceResponse,
    BetRequest,
    CardResponse,
    GameStateResponse,
    HandResponse,
    InsuranceRequest,
    ResetRequest,
    SplitHandResponse,
    StatsResponse,
)
from api.session import TableSession, close_session, load_session, open_session, save_session
from config import config
from table_engine.achievements import AchievementTracker
from table_engine.cards import Card
from table_engine.game.state import Phase
from table_engine.hand import Hand
from table_engine.payout import max_insurance
from table_engine.storage import MemoryStore
from table_engine.strategy import BasicStrategy
from table_engine.table import DealerPacing, Table

logger = logging.getLogger(__name__)

router = APIRouter()

# Live tables for this worker; the session store holds the durable copy
_tables: dict[str, Table] = {}

_strategy = BasicStrategy()

SessionHeader = Annotated[str, Header(alias="X-Session-ID")]


def _build_table(session: TableSession | None = None) -> Table:
    """Create a table whose snapshot stores are backed by the session's documents."""
    session = session or TableSession()
    table = Table(
        rules=config.game.to_rules(),
        pacing=DealerPacing.instant(),
        state_store=MemoryStore(session.state),
        history_store=MemoryStore(session.history),
    )
    table.achievements = AchievementTracker.load(session.achievements)
    return table


async def _save_table(session_id: str, table: Table) -> None:
    """Write the table state, hand history and achievements back into the session."""
    table.save()
    session = await load_session(session_id) or TableSession()
    session.state = table.state_store.load() if table.state_store else None
    session.history = table.history_store.load() if table.history_store else None
    session.achievements = table.achievements.export()
    await save_session(session_id, session)


async def get_table(session_id: str) -> Table:
    """Get the table for a session, rebuilding it from the session store if needed."""
    session = await load_session(session_id)
    if session is None:
        _tables.pop(session_id, None)
        raise HTTPException(status_code=404, detail="Session not found")

    table = _tables.get(session_id)
    if table is None:
        table = _build_table(session)
        table.restore()
        _tables[session_id] = table
    return table


def card_response(card: Card) -> CardResponse:
    return CardResponse(rank=str(card.rank), suit=str(card.suit), value=card.value)


def hand_response(hand: Hand) -> HandResponse:
    """Convert a Hand to HandResponse."""
    return HandResponse(
        cards=[card_response(c) for c in hand.cards],
        value=hand.value,
        is_soft=hand.is_soft,
        is_blackjack=hand.is_blackjack,
        is_busted=hand.is_busted,
    )


def _state_response(table: Table) -> GameStateResponse:
    """Convert table state to response. The hole card stays hidden until revealed."""
    state = table.state
    engine = table.engine

    dealer = state.dealer_hand
    if not state.dealer_revealed:
        dealer = Hand(dealer.cards[:1])

    return GameStateResponse(
        phase=state.phase.value,
        player_hand=hand_response(state.player_hand),
        dealer_hand=hand_response(dealer),
        dealer_showing=card_response(state.dealer_upcard) if state.dealer_upcard else None,
        dealer_revealed=state.dealer_revealed,
        split_hands=[
            SplitHandResponse(
                **hand_response(h.hand).model_dump(),
                bet=h.bet,
                result=h.result.value if h.result else None,
                stood=h.stood,
                doubled=h.doubled,
            )
            for h in state.split_hands
        ],
        active_hand_index=state.active_hand_index,
        bet=state.bet,
        insurance_bet=state.insurance_bet,
        chips=state.chips,
        result=state.result.value if state.result else None,
        payout=state.payout,
        message=state.message,
        legal_actions=sorted(table.legal_actions),
        can_hit=engine.can_hit(state),
        can_stand=engine.can_stand(state),
        can_double=engine.can_double(state),
        can_split=engine.can_split(state),
        can_surrender=engine.can_surrender(state),
        can_insure=engine.can_insure(state),
        max_insurance=max_insurance(state.bet, state.chips)
        if state.phase is Phase.INSURANCE_OFFER
        else 0,
        cards_remaining=state.cards_remaining,
        cut_card_reached=state.cut_card_reached,
        stats=StatsResponse(
            wins=state.stats.wins,
            losses=state.stats.losses,
            pushes=state.stats.pushes,
            hands_played=state.detailed_stats.total_hands_played,
            blackjacks=state.detailed_stats.blackjack_count,
            net_result=state.detailed_stats.net_result,
            current_win_streak=state.detailed_stats.current_win_streak,
            current_loss_streak=state.detailed_stats.current_loss_streak,
        ),
        new_achievements=[
            AchievementResponse(id=a.id, name=a.name, description=a.description)
            for a in table.new_achievements
        ],
        achievements_unlocked=table.achievements.progress[0],
    )


async def _perform(
    session_id: str,
    name: str,
    action: Callable[[Table], bool],
) -> GameStateResponse:
    """Run one table action, play the dealer out if it's their turn, and save."""
    table = await get_table(session_id)

    if not action(table):
        raise HTTPException(status_code=400, detail=f"Cannot {name} now")

    if table.dealer_pending:
        await table.play_dealer_async()

    await _save_table(session_id, table)
    return _state_response(table)


@router.post("/new")
async def new_game(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> dict[str, str]:
    """Seat the player at a fresh table, reusing their session if it is still valid."""
    existing = await load_session(session_id) if session_id else None
    if existing is None:
        session_id = await open_session()

    table = _build_table()
    if existing is not None:
        # Unlocked achievements outlive the table
        table.achievements = AchievementTracker.load(existing.achievements)
    _tables[session_id] = table
    await _save_table(session_id, table)
    logger.info("New table with a bankroll of %d", table.state.chips)

    return {"session_id": session_id}


@router.delete("/session", status_code=204)
async def end_game(session_id: SessionHeader) -> None:
    """Leave the table and forget the session."""
    _tables.pop(session_id, None)
    await close_session(session_id)


@router.get("/state")
async def get_state(session_id: SessionHeader) -> GameStateResponse:
    """Get current table state."""
    table = await get_table(session_id)
    return _state_response(table)


@router.post("/bet")
async def place_bet(request: BetRequest, session_id: SessionHeader) -> GameStateResponse:
    """Add chips to the bet."""
    return await _perform(session_id, "bet", lambda t: t.place_bet(request.amount))


@router.post("/clear-bet")
async def clear_bet(session_id: SessionHeader) -> GameStateResponse:
    """Take the bet back."""
    return await _perform(session_id, "clear the bet", lambda t: t.clear_bet())


@router.post("/deal")
async def deal(session_id: SessionHeader) -> GameStateResponse:
    """Deal a round for the current bet."""
    return await _perform(session_id, "deal", lambda t: t.deal())


@router.post("/action")
async def player_action(request: ActionRequest, session_id: SessionHeader) -> GameStateResponse:
    """Execute a player action."""
    actions: dict[str, Callable[[Table], bool]] = {
        "hit": lambda t: t.hit(),
        "stand": lambda t: t.stand(),
        "double": lambda t: t.double_down(),
        "split": lambda t: t.split(),
        "surrender": lambda t: t.surrender(),
    }
    return await _perform(session_id, request.action, actions[request.action])


@router.post("/insurance")
async def insurance(request: InsuranceRequest, session_id: SessionHeader) -> GameStateResponse:
    """Take (amount > 0) or decline (amount 0) insurance."""
    return await _perform(session_id, "insure", lambda t: t.insure(request.amount))


@router.post("/new-round")
async def new_round(session_id: SessionHeader) -> GameStateResponse:
    """Clear the table for the next bet."""
    return await _perform(session_id, "start a new round", lambda t: t.new_round())


@router.post("/reset")
async def reset(session_id: SessionHeader, request: ResetRequest | None = None) -> GameStateResponse:
    """Start over with a fresh bankroll."""
    bankroll = request.bankroll if request else None
    return await _perform(session_id, "reset", lambda t: t.reset(bankroll))


@router.get("/advice")
async def advice(session_id: SessionHeader) -> AdviceResponse:
    """Basic strategy recommendation for the active hand."""
    table = await get_table(session_id)
    state = table.state
    engine = table.engine

    if state.phase not in (Phase.PLAYER_TURN, Phase.SPLITTING) or state.dealer_upcard is None:
        raise HTTPException(status_code=400, detail="No decision to advise on")

    can_split = engine.can_split(state)
    recommended = _strategy.recommend(
        state.player_hand,
        state.dealer_upcard,
        can_double=engine.can_double(state),
        can_split=can_split,
        can_surrender=engine.can_surrender(state),
    )
    code = _strategy.lookup(state.player_hand, state.dealer_upcard, can_split)
    return AdviceResponse(action=recommended.trigger, code=str(code))
