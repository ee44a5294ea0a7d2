"""Abstract dispatcher interface.

The engine only produces RebalancePlans; a Dispatcher turns each intent of
a plan into something the venue acts on (or, in paper mode, a log entry).
Strategy code depends only on this interface.
"""

from abc import ABC, abstractmethod

from carry.models import DispatchResult, RebalancePlan


class Dispatcher(ABC):
    """Abstract base class for plan dispatchers."""

    @abstractmethod
    async def dispatch(self, plan: RebalancePlan) -> list[DispatchResult]:
        """Submit every intent of a plan, in plan order.

        Args:
            plan: Plan produced by the engine for this cycle.

        Returns:
            One DispatchResult per intent; empty for an empty plan.

        Raises:
            VenueError: If an intent cannot be submitted.
        """
        ...
