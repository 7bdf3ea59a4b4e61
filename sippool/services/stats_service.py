# sippool/services/stats_service.py
# -*- coding: utf-8 -*-
"""
Pool Stats Service
Read-only utilization figures, computed from the current row states on every call.
"""
from sippool.database.pool_repository import SipConfigRepository


def percentage_used(assigned: int, total: int) -> int:
    """assigned/total as a whole percentage, rounded half up; 0 for an empty pool."""
    if total <= 0:
        return 0
    # Integer arithmetic: round(x) on floats would round 12.5 down to 12
    return (assigned * 200 + total) // (2 * total)


class PoolStatsService:

    @staticmethod
    def get_stats() -> dict:
        """
        Returns:
            dict: {'total', 'available', 'assigned', 'percentage_used'}
        """
        total, available = SipConfigRepository.count_by_state()
        assigned = total - available
        return {
            'total': total,
            'available': available,
            'assigned': assigned,
            'percentage_used': percentage_used(assigned, total),
        }
