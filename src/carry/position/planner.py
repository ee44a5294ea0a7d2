"""Position planner: current account state + funding decision -> RebalancePlan.

The hedge is a perp leg in the direction being paid funding and a spot leg
in the opposite direction (LONG perp pairs with a spot borrow, SHORT perp
with a spot deposit), so net exposure to the underlying stays near zero.

Profitability gate: net carry = annualized funding - borrow APR, saturating
at zero. Zero net carry closes both legs; any positive carry targets the
configured size. There is no hysteresis band, so the plan can flip between
open and close on consecutive cycles when carry hovers around zero.

Each leg follows the same rule given its signed current size:
- flat, not closing       -> target in the wanted direction
- flat, closing           -> nothing
- closing                 -> |current| against the current sign
- wrong direction         -> |current| + target in the wanted direction
- right direction         -> nothing

Plans are recomputed from scratch every cycle, so running the planner twice
on the same state yields the same plan.
"""

from carry.config import StrategySettings
from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.logging import get_logger
from carry.models import (
    FundingDecision,
    MarketKind,
    OrderIntent,
    PerpMarket,
    PerpPosition,
    PositionDirection,
    RebalancePlan,
    SpotMarket,
)
from carry.position.sizing import round_up_to_step, spot_target_size
from carry.rates.fixed_point import saturating_sub

logger = get_logger(__name__)


def should_close(annualized_funding_rate: int, borrow_rate: int) -> bool:
    """True when funding no longer strictly exceeds the borrow cost."""
    return saturating_sub(annualized_funding_rate, borrow_rate) == 0


def plan_leg(
    current_size: int,
    wanted: PositionDirection,
    target_size: int,
    closing: bool,
) -> tuple[PositionDirection, int] | None:
    """Direction and raw size of the order one leg needs, or None."""
    if current_size == 0:
        if closing:
            return None
        return wanted, target_size

    current_direction = PositionDirection.LONG if current_size > 0 else PositionDirection.SHORT
    if closing:
        return current_direction.opposite(), abs(current_size)
    if current_direction is not wanted:
        return wanted, abs(current_size) + target_size
    return None


class PositionPlanner:
    """Computes the orders that move an account to (or out of) the hedge.

    Performs no I/O. The target is given in base precision and rescaled to
    the spot market's decimals for the spot leg. Sizes are rounded up to
    each market's order step.

    Args:
        settings: Strategy settings containing target_position_size.
        constants: Venue precisions; base_precision scales the spot target.
    """

    def __init__(
        self,
        settings: StrategySettings,
        constants: ProtocolConstants = DEFAULT_CONSTANTS,
    ) -> None:
        self._settings = settings
        self._constants = constants

    @property
    def target_position_size(self) -> int:
        return self._settings.target_position_size

    def plan(
        self,
        decision: FundingDecision,
        borrow_rate: int,
        perp_market: PerpMarket,
        spot_market: SpotMarket,
        perp_position: PerpPosition | None,
        spot_token_amount: int,
        margin_trading_enabled: bool,
    ) -> RebalancePlan:
        """Plan the perp and spot orders for one cycle.

        Args:
            decision: Annualized funding rate and favored direction.
            borrow_rate: Spot borrow cost in the same units as the funding rate.
            perp_market: Perp market of the hedge (index, step size).
            spot_market: Spot market of the hedge (index, step size).
            perp_position: Current perp position, None when flat.
            spot_token_amount: Signed spot balance in spot decimals (deposit > 0, borrow < 0).
            margin_trading_enabled: Whether the account may borrow on spot.

        Returns:
            RebalancePlan with at most one order per leg.
        """
        closing = should_close(decision.annualized_funding_rate, borrow_rate)
        target = self.target_position_size
        spot_target = spot_target_size(target, spot_market, self._constants)

        perp_current = perp_position.base_asset_amount if perp_position is not None else 0
        perp_leg = plan_leg(perp_current, decision.favored_direction, target, closing)
        spot_leg = plan_leg(
            spot_token_amount, decision.favored_direction.opposite(), spot_target, closing
        )

        perp_order = None
        if perp_leg is not None:
            direction, size = perp_leg
            perp_order = OrderIntent(
                market_index=perp_market.market_index,
                market_kind=MarketKind.PERP,
                direction=direction,
                size=round_up_to_step(size, perp_market.order_step_size),
            )

        spot_order = None
        if spot_leg is not None:
            direction, size = spot_leg
            spot_order = OrderIntent(
                market_index=spot_market.market_index,
                market_kind=MarketKind.SPOT,
                direction=direction,
                size=round_up_to_step(size, spot_market.order_step_size),
            )

        plan = RebalancePlan(
            perp_order=perp_order,
            spot_order=spot_order,
            should_close=closing,
            enable_margin_trading=spot_order is not None and not margin_trading_enabled,
        )

        logger.info(
            "rebalance_planned",
            should_close=closing,
            favored_direction=decision.favored_direction.value,
            funding_apr=str(decision.annualized_funding_rate),
            borrow_apr=str(borrow_rate),
            perp_order=_describe(perp_order),
            spot_order=_describe(spot_order),
            enable_margin_trading=plan.enable_margin_trading,
        )
        return plan


def _describe(order: OrderIntent | None) -> str | None:
    if order is None:
        return None
    return f"{order.direction.value} {order.size}"
