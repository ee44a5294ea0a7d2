"""Tests for PaperDispatcher.

Verifies:
- One result per intent, in plan order
- is_simulated=True and paper_{hex} reference ids
- History accumulates across plans, keeping the most recent max_history
- Empty plans dispatch nothing
"""

import pytest

from carry.execution.paper_dispatcher import PaperDispatcher
from carry.models import (
    EnableMarginTradingIntent,
    MarketKind,
    OrderIntent,
    PositionDirection,
    RebalancePlan,
)


@pytest.fixture
def dispatcher() -> PaperDispatcher:
    return PaperDispatcher()


@pytest.fixture
def open_plan() -> RebalancePlan:
    return RebalancePlan(
        perp_order=OrderIntent(
            market_index=0,
            market_kind=MarketKind.PERP,
            direction=PositionDirection.SHORT,
            size=100,
        ),
        spot_order=OrderIntent(
            market_index=1,
            market_kind=MarketKind.SPOT,
            direction=PositionDirection.LONG,
            size=100,
        ),
        should_close=False,
        enable_margin_trading=True,
    )


@pytest.mark.asyncio
async def test_dispatches_every_intent_in_order(
    dispatcher: PaperDispatcher, open_plan: RebalancePlan
) -> None:
    results = await dispatcher.dispatch(open_plan)

    assert [r.intent for r in results] == [
        open_plan.perp_order,
        EnableMarginTradingIntent(),
        open_plan.spot_order,
    ]
    assert all(r.is_simulated for r in results)


@pytest.mark.asyncio
async def test_reference_id_format(
    dispatcher: PaperDispatcher, open_plan: RebalancePlan
) -> None:
    results = await dispatcher.dispatch(open_plan)

    ids = [r.reference_id for r in results]
    assert all(i.startswith("paper_") and len(i) == len("paper_") + 12 for i in ids)
    assert len(set(ids)) == len(ids)


@pytest.mark.asyncio
async def test_history_accumulates(
    dispatcher: PaperDispatcher, open_plan: RebalancePlan
) -> None:
    await dispatcher.dispatch(open_plan)
    await dispatcher.dispatch(RebalancePlan(perp_order=open_plan.perp_order))

    assert len(dispatcher.history) == 4


@pytest.mark.asyncio
async def test_history_keeps_most_recent(open_plan: RebalancePlan) -> None:
    dispatcher = PaperDispatcher(max_history=2)
    await dispatcher.dispatch(open_plan)
    latest = await dispatcher.dispatch(open_plan)

    assert dispatcher.history == latest[1:]


@pytest.mark.asyncio
async def test_empty_plan_dispatches_nothing(dispatcher: PaperDispatcher) -> None:
    assert await dispatcher.dispatch(RebalancePlan()) == []
    assert dispatcher.history == []
