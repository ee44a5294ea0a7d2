"""Tests for order size quantization and signed spot amounts.

round_up_to_step must return the smallest multiple of step >= size:
never smaller (leaves exposure unhedged), never a full step more.
"""

from dataclasses import replace

import pytest

from carry.exceptions import RateComputationError
from carry.models import SpotBalanceType, SpotMarket, SpotPosition
from carry.position.sizing import round_up_to_step, signed_token_amount, spot_target_size


class TestRoundUpToStep:
    @pytest.mark.parametrize(
        ("size", "step", "expected"),
        [
            (100, 1, 100),
            (100, 10, 100),
            (101, 10, 110),
            (95, 30, 120),
            (1, 1_000_000, 1_000_000),
            (0, 7, 0),
        ],
    )
    def test_examples(self, size: int, step: int, expected: int) -> None:
        assert round_up_to_step(size, step) == expected

    @pytest.mark.parametrize("step", [1, 3, 7, 10, 250])
    def test_smallest_multiple_at_or_above(self, step: int) -> None:
        for size in range(0, 1_000, 13):
            rounded = round_up_to_step(size, step)
            assert rounded % step == 0
            assert size <= rounded < size + step

    @pytest.mark.parametrize("step", [0, -10])
    def test_non_positive_step_raises(self, step: int) -> None:
        with pytest.raises(RateComputationError, match="step"):
            round_up_to_step(100, step)

    def test_negative_size_raises(self) -> None:
        with pytest.raises(RateComputationError, match="size"):
            round_up_to_step(-1, 10)


class TestSignedTokenAmount:
    def test_no_position_is_zero(self, spot_market: SpotMarket) -> None:
        assert signed_token_amount(None, spot_market) == 0

    def test_deposit_is_positive(self, spot_market: SpotMarket) -> None:
        position = SpotPosition(market_index=1, scaled_balance=100)
        assert signed_token_amount(position, spot_market) == 100

    def test_borrow_is_negative(self, spot_market: SpotMarket) -> None:
        position = SpotPosition(
            market_index=1, scaled_balance=100, balance_type=SpotBalanceType.BORROW
        )
        assert signed_token_amount(position, spot_market) == -100


class TestSpotTargetSize:
    @pytest.mark.parametrize(
        ("decimals", "expected"),
        [
            (9, 100_000_000),
            (6, 100_000),
            (12, 100_000_000_000),
        ],
    )
    def test_rescales_to_spot_decimals(
        self, spot_market: SpotMarket, decimals: int, expected: int
    ) -> None:
        market = replace(spot_market, decimals=decimals)
        assert spot_target_size(100_000_000, market) == expected

    def test_rounds_up(self, spot_market: SpotMarket) -> None:
        market = replace(spot_market, decimals=6)
        assert spot_target_size(1, market) == 1
        assert spot_target_size(1_001, market) == 2
