"""Track vision API spend per UTC day and enforce an optional budget."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from config.constants import DEFAULT_VISION_PRICING, VISION_PRICING

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimated USD cost of one completion."""
    price_in, price_out = VISION_PRICING.get(model, DEFAULT_VISION_PRICING)
    return (input_tokens / 1000 * price_in) + (output_tokens / 1000 * price_out)


class CostTracker:
    """Track vision API costs with budget alerts."""

    def __init__(
        self,
        daily_budget: Optional[float] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize cost tracker.

        Args:
            daily_budget: Daily budget in USD (None = unlimited)
            clock: Returns the current aware UTC datetime
        """
        self.daily_budget = daily_budget
        self._clock = clock
        self.costs: Dict[str, float] = {}  # UTC date -> total cost
        self.calls: Dict[str, int] = {}  # UTC date -> model calls
        self._lock = threading.Lock()
        logger.info(f"CostTracker initialized (daily budget: ${daily_budget})")

    def _today(self) -> str:
        return self._clock().strftime("%Y-%m-%d")

    def add_cost(self, cost: float) -> None:
        """Add one model call and its cost to today's totals."""
        today = self._today()

        with self._lock:
            self.costs[today] = self.costs.get(today, 0.0) + cost
            self.calls[today] = self.calls.get(today, 0) + 1
            total = self.costs[today]

        logger.info(f"Added ${cost:.6f} to today's total (total today: ${total:.4f})")

        if self.daily_budget and total >= self.daily_budget:
            logger.warning(
                f"Daily vision budget exceeded! ${total:.4f} / ${self.daily_budget:.2f}"
            )

    def get_today_cost(self) -> float:
        """Get total cost for today."""
        return self.costs.get(self._today(), 0.0)

    def get_total_cost(self, days: int = 7) -> float:
        """Get total cost for the last N days, today included."""
        cutoff = (self._clock() - timedelta(days=days - 1)).strftime("%Y-%m-%d")
        return sum(cost for day, cost in self.costs.items() if day >= cutoff)

    def is_over_budget(self) -> bool:
        """Check if today's cost reached the budget."""
        if not self.daily_budget:
            return False
        return self.get_today_cost() >= self.daily_budget

    def get_stats(self) -> Dict[str, object]:
        """Get cost statistics."""
        return {
            "today_cost": round(self.get_today_cost(), 6),
            "today_calls": self.calls.get(self._today(), 0),
            "week_cost": round(self.get_total_cost(days=7), 6),
            "month_cost": round(self.get_total_cost(days=30), 6),
            "daily_budget": self.daily_budget,
            "over_budget": self.is_over_budget(),
        }
