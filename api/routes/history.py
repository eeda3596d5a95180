"""Hand history API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Header, HTTPException

from api.routes.game import get_table, hand_response
from api.schemas import (
    HistoryEntryResponse,
    HistoryStepResponse,
    HistorySummaryResponse,
    SplitOutcomeResponse,
)
from table_engine.history import HandHistoryEntry, HandReplay

router = APIRouter()

SessionHeader = Annotated[str, Header(alias="X-Session-ID")]


def _summary(entry: HandHistoryEntry) -> HistorySummaryResponse:
    return HistorySummaryResponse(
        id=entry.id,
        timestamp=entry.timestamp,
        result=entry.result.value,
        bet=entry.bet,
        insurance_bet=entry.insurance_bet,
        payout=entry.payout,
        net=entry.net,
        actions=list(entry.actions),
        is_split=entry.is_split,
        steps=len(entry.steps),
    )


async def _entry(session_id: str, entry_id: int) -> HandHistoryEntry:
    table = await get_table(session_id)
    entry = table.history.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Hand #{entry_id} not found")
    return entry


@router.get("")
async def list_history(session_id: SessionHeader) -> list[HistorySummaryResponse]:
    """Finished rounds, newest first."""
    table = await get_table(session_id)
    return [_summary(e) for e in reversed(table.history.entries)]


@router.get("/{entry_id}")
async def get_entry(entry_id: int, session_id: SessionHeader) -> HistoryEntryResponse:
    """One finished round in full."""
    entry = await _entry(session_id, entry_id)
    return HistoryEntryResponse(
        **_summary(entry).model_dump(),
        player_hand=hand_response(entry.player_hand),
        dealer_hand=hand_response(entry.dealer_hand),
        split_outcomes=[
            SplitOutcomeResponse(
                **hand_response(o.hand).model_dump(),
                bet=o.bet,
                result=o.result.value,
            )
            for o in entry.split_outcomes
        ],
    )


@router.get("/{entry_id}/steps/{index}")
async def get_step(entry_id: int, index: int, session_id: SessionHeader) -> HistoryStepResponse:
    """Replay a finished round one step at a time."""
    entry = await _entry(session_id, entry_id)
    try:
        replay = HandReplay(entry)
        step = replay.seek(index)
    except (ValueError, IndexError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    return HistoryStepResponse(
        index=replay.index,
        total=len(replay),
        action=step.action,
        player_hand=hand_response(step.player_hand),
        dealer_hand=hand_response(step.dealer_hand),
        split_hands=[hand_response(h) for h in step.split_hands],
        active_hand_index=step.active_hand_index,
        dealer_revealed=step.dealer_revealed,
        message=step.message,
        at_start=replay.at_start,
        at_end=replay.at_end,
    )
