# tests/integration/services/test_stats_service.py
import pytest

from sippool.database.pool_repository import SipConfigRepository
from sippool.services.assignment_service import AssignmentService
from sippool.services.stats_service import PoolStatsService, percentage_used


@pytest.mark.parametrize("assigned, total, expected", [
    (0, 0, 0),
    (0, 5, 0),
    (2, 3, 67),
    (1, 3, 33),
    (1, 8, 13),
    (3, 3, 100),
])
def test_percentage_used_rounds_half_up(assigned, total, expected):
    assert percentage_used(assigned, total) == expected


def test_stats_empty_pool(session):
    """Test an unprovisioned pool reports zeros without dividing by zero."""
    assert PoolStatsService.get_stats() == {
        'total': 0, 'available': 0, 'assigned': 0, 'percentage_used': 0,
    }


def test_stats_track_assign_and_release(session, seed_pool):
    """Test available + assigned == total through a sequence of pool changes."""
    seed_pool(4)

    steps = [
        (lambda: AssignmentService.assign_next(1), 3),
        (lambda: AssignmentService.assign_next(2), 2),
        (lambda: AssignmentService.release(1), 3),
        (lambda: AssignmentService.assign_next(3), 2),
        (lambda: AssignmentService.release_for_user(2), 3),
        (lambda: AssignmentService.release_for_user(2), 3),
    ]
    for action, expected_available in steps:
        action()
        session.commit()

        stats = PoolStatsService.get_stats()
        assert stats['total'] == 4
        assert stats['available'] == expected_available
        assert stats['available'] + stats['assigned'] == stats['total']
        assert stats['percentage_used'] == percentage_used(stats['assigned'], 4)


def test_stats_exclude_disabled_records(session, seed_pool):
    """Test disabled lines count in neither available nor the total."""
    seed_pool(4)
    SipConfigRepository.update_details(4, enabled=False)
    AssignmentService.assign_next(1)
    session.commit()

    assert PoolStatsService.get_stats() == {
        'total': 3, 'available': 2, 'assigned': 1, 'percentage_used': 33,
    }
