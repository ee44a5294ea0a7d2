"""Paper dispatcher: records intents instead of submitting them.

Every intent is logged and kept in a bounded in-memory history (the most
recent max_history results) so a paper run can be inspected afterwards.
Results are flagged is_simulated=True.
"""

import time
from collections import deque
from uuid import uuid4

from carry.execution.dispatcher import Dispatcher
from carry.logging import get_logger
from carry.models import (
    DispatchResult,
    EnableMarginTradingIntent,
    OrderIntent,
    RebalancePlan,
)

logger = get_logger(__name__)


class PaperDispatcher(Dispatcher):
    """Dispatcher for paper mode. Never touches the venue."""

    def __init__(self, max_history: int = 1000) -> None:
        self._history: deque[DispatchResult] = deque(maxlen=max_history)

    @property
    def history(self) -> list[DispatchResult]:
        return list(self._history)

    async def dispatch(self, plan: RebalancePlan) -> list[DispatchResult]:
        results: list[DispatchResult] = []
        for intent in plan.intents():
            result = DispatchResult(
                intent=intent,
                reference_id=f"paper_{uuid4().hex[:12]}",
                timestamp=time.time(),
                is_simulated=True,
            )
            if isinstance(intent, OrderIntent):
                logger.info(
                    "paper_order_recorded",
                    reference_id=result.reference_id,
                    market_index=intent.market_index,
                    market_kind=intent.market_kind.value,
                    direction=intent.direction.value,
                    size=str(intent.size),
                    reduce_only=intent.reduce_only,
                )
            elif isinstance(intent, EnableMarginTradingIntent):
                logger.info(
                    "paper_margin_trading_recorded",
                    reference_id=result.reference_id,
                    enabled=intent.enabled,
                )
            results.append(result)

        self._history.extend(results)
        return results
