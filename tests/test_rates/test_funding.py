"""Tests for the funding rate calculator and the venue's long/short split.

Reference numbers for the amm fixture (mark TWAP 100.0, oracle TWAP 99.0,
hourly funding period):
    spread = 1_000_000
    funding_rate = 1_000_000 * 1000 / 24 = 41_666_666
    hourly = 41_666_666 * 1e6 / 99_000_000 = 420_875
    annualized = 420_875 * 100 * 24 * 365 = 368_686_500_000 (~368.69%/yr)
"""

from dataclasses import replace

import pytest

from carry.constants import ProtocolConstants
from carry.exceptions import RateComputationError
from carry.models import AmmState, OraclePriceData, PerpMarket, PositionDirection
from carry.rates.funding import (
    calculate_funding_decision,
    calculate_funding_payment_in_quote,
    calculate_funding_rate_long_short,
    compute_funding_rate,
)


def _recording_splitter(captured: list[int]):
    def splitter(amm: AmmState, funding_rate: int, constants: ProtocolConstants) -> tuple[int, int]:
        captured.append(funding_rate)
        return funding_rate, funding_rate

    return splitter


class TestFundingDecision:
    """calculate_funding_decision on already-updated TWAPs."""

    def test_mark_above_oracle_favors_short(self, amm: AmmState) -> None:
        decision = calculate_funding_decision(amm, 100_000_000, 99_000_000)

        assert decision.favored_direction is PositionDirection.SHORT
        assert decision.funding_rate_long == 41_666_666
        assert decision.funding_rate_short == 41_666_666
        assert decision.annualized_funding_rate == 368_686_500_000

    def test_mark_below_oracle_favors_long(self, amm: AmmState) -> None:
        decision = calculate_funding_decision(amm, 99_000_000, 100_000_000)

        assert decision.favored_direction is PositionDirection.LONG
        assert decision.funding_rate_long == -41_666_666
        assert decision.annualized_funding_rate > 0

    def test_equal_twaps_favor_long_with_zero_rate(self, amm: AmmState) -> None:
        decision = calculate_funding_decision(amm, 100_000_000, 100_000_000)

        assert decision.favored_direction is PositionDirection.LONG
        assert decision.annualized_funding_rate == 0

    def test_non_positive_oracle_twap_raises(self, amm: AmmState) -> None:
        with pytest.raises(RateComputationError, match="oracle price twap"):
            calculate_funding_decision(amm, 100_000_000, 0)

    def test_splitter_is_injected(self, amm: AmmState) -> None:
        def dampen_short(amm, rate, constants):
            return rate, rate // 2

        decision = calculate_funding_decision(
            amm, 100_000_000, 99_000_000, splitter=dampen_short
        )
        assert decision.funding_rate_short == 20_833_333
        assert decision.annualized_funding_rate < 368_686_500_000


class TestPremiumClamp:
    """The spread feeding the rate never exceeds oracle_twap / 33."""

    def test_large_spread_clamped(self, amm: AmmState) -> None:
        captured: list[int] = []
        decision = calculate_funding_decision(
            amm, 200_000_000, 100_000_000, splitter=_recording_splitter(captured)
        )
        # max spread 3_030_303 -> 3_030_303 * 1000 / 24
        assert captured == [126_262_625]
        assert decision.annualized_funding_rate == 1_106_060_376_000

    def test_negative_spread_clamped(self, amm: AmmState) -> None:
        captured: list[int] = []
        calculate_funding_decision(
            amm, 1_000_000, 100_000_000, splitter=_recording_splitter(captured)
        )
        assert captured == [-126_262_625]

    @pytest.mark.parametrize("oracle_twap", [1, 33, 999, 99_000_000, 25_000_000_000])
    @pytest.mark.parametrize("mark_ratio", [0, 1, 2, 10])
    def test_clamp_bound_holds(self, amm: AmmState, oracle_twap: int, mark_ratio: int) -> None:
        captured: list[int] = []
        calculate_funding_decision(
            amm, oracle_twap * mark_ratio, oracle_twap, splitter=_recording_splitter(captured)
        )
        max_spread = oracle_twap // 33
        assert abs(captured[0]) <= max_spread * 1000 // 24


class TestFundingPeriod:
    def test_eight_hour_period(self, amm: AmmState) -> None:
        captured: list[int] = []
        eight_hour = replace(amm, funding_period=8 * 3600)
        calculate_funding_decision(
            eight_hour, 100_000_000, 99_000_000, splitter=_recording_splitter(captured)
        )
        assert captured == [333_333_333]

    def test_sub_hour_period_treated_as_hourly(self, amm: AmmState) -> None:
        captured: list[int] = []
        calculate_funding_decision(
            replace(amm, funding_period=0),
            100_000_000,
            99_000_000,
            splitter=_recording_splitter(captured),
        )
        assert captured == [41_666_666]

    def test_period_longer_than_a_day_raises(self, amm: AmmState) -> None:
        with pytest.raises(RateComputationError, match="division by zero"):
            calculate_funding_decision(
                replace(amm, funding_period=2 * 86400), 100_000_000, 99_000_000
            )


class TestFundingSplit:
    """calculate_funding_rate_long_short dampens the receiving side."""

    def test_payment_in_quote(self) -> None:
        # 1e9 rate on 5 base units (5e9) -> 5_000_000 quote
        assert calculate_funding_payment_in_quote(10**9, 5 * 10**9) == 5_000_000
        assert calculate_funding_payment_in_quote(-(10**9), 5 * 10**9) == -5_000_000

    def test_amm_collecting_returns_full_rate(self) -> None:
        amm = AmmState(base_asset_amount_with_amm=10 * 10**9)
        assert calculate_funding_rate_long_short(amm, 10**9) == (10**9, 10**9)

    def test_amm_paying_within_budget_returns_full_rate(self) -> None:
        amm = AmmState(
            base_asset_amount_long=5 * 10**9,
            base_asset_amount_short=-15 * 10**9,
            base_asset_amount_with_amm=-10 * 10**9,
            total_fee_minus_distributions=90_000_000,
        )
        # amm owes 10_000_000, budget 30_000_000
        assert calculate_funding_rate_long_short(amm, 10**9) == (10**9, 10**9)

    def test_shorts_capped_when_longs_pay(self) -> None:
        amm = AmmState(
            base_asset_amount_long=5 * 10**9,
            base_asset_amount_short=-15 * 10**9,
            base_asset_amount_with_amm=-10 * 10**9,
            total_fee_minus_distributions=3_000_000,
        )
        # longs pay 5_000_000, budget 1_000_000 -> 6e6 * 1e12 / 15e9
        assert calculate_funding_rate_long_short(amm, 10**9) == (10**9, 400_000_000)

    def test_longs_capped_when_shorts_pay(self) -> None:
        amm = AmmState(
            base_asset_amount_long=15 * 10**9,
            base_asset_amount_short=-5 * 10**9,
            base_asset_amount_with_amm=10 * 10**9,
            total_fee_minus_distributions=3_000_000,
        )
        assert calculate_funding_rate_long_short(amm, -(10**9)) == (-400_000_000, -(10**9))

    def test_exchange_fee_lowers_budget(self) -> None:
        amm = AmmState(
            base_asset_amount_long=5 * 10**9,
            base_asset_amount_short=-15 * 10**9,
            base_asset_amount_with_amm=-10 * 10**9,
            total_exchange_fee=6_000_000,
            total_fee_minus_distributions=6_000_000,
        )
        # lower bound 3_000_000 -> surplus 3_000_000 -> budget 1_000_000
        assert calculate_funding_rate_long_short(amm, 10**9) == (10**9, 400_000_000)

    def test_negative_fee_pool_raises(self) -> None:
        amm = AmmState(
            base_asset_amount_long=5 * 10**9,
            base_asset_amount_short=-15 * 10**9,
            base_asset_amount_with_amm=-10 * 10**9,
            total_fee_minus_distributions=-5,
        )
        with pytest.raises(RateComputationError, match="fee pool"):
            calculate_funding_rate_long_short(amm, 10**9)


class TestComputeFundingRate:
    """compute_funding_rate advances the TWAPs and derives funding."""

    def test_reference_market(self, perp_market: PerpMarket, now: int) -> None:
        oracle = OraclePriceData(price=99_000_000, confidence=0)
        decision = compute_funding_rate(perp_market, oracle, now)

        assert decision.oracle_price_twap == 99_000_000
        assert decision.mark_price_twap == 100_000_000
        assert decision.favored_direction is PositionDirection.SHORT
        assert decision.annualized_funding_rate == 368_686_500_000

    def test_mutates_given_amm(self, perp_market: PerpMarket, now: int) -> None:
        oracle = OraclePriceData(price=99_000_000, confidence=0)
        compute_funding_rate(perp_market, oracle, now)

        assert perp_market.amm.last_oracle_price_twap_ts == now
        assert perp_market.amm.last_mark_price_twap_ts == now

    def test_oracle_at_reserve_gives_zero_funding(self, perp_market: PerpMarket, now: int) -> None:
        oracle = OraclePriceData(price=100_000_000, confidence=0)
        decision = compute_funding_rate(perp_market, oracle, now)

        assert decision.annualized_funding_rate == 0
        assert decision.favored_direction is PositionDirection.LONG
