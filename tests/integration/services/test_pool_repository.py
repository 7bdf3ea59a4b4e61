# tests/integration/services/test_pool_repository.py
import pytest

from sippool.database.pool_repository import SipConfigRepository
from sippool.utils.exceptions import ResourceNotFound, ConflictError


def test_add_record_defaults(session):
    """Test provisioning a record with only the required SIP fields."""
    record = SipConfigRepository.add_record(
        username="2401", password="pw", domain="sip.example.org", server="sip.example.org",
        transport="udp",
    )
    session.commit()

    assert record.id is not None
    assert record.port == 5060
    assert record.transport == "UDP"
    assert record.ice_servers == {"urls": []}
    assert record.is_available
    assert record.status == "available"


def test_add_record_duplicate_extension(session, seed_pool):
    """Test provisioning a second record with the same extension raises ConflictError."""
    seed_pool(1, first_extension=2400)

    with pytest.raises(ConflictError, match="Extension 2400"):
        SipConfigRepository.add_record(
            username="dup", password="pw", domain="sip.example.org", server="sip.example.org",
            extension=2400,
        )


def test_list_all_is_ordered_and_paginated(session, seed_pool):
    seed_pool(5)

    first_page = SipConfigRepository.list_all(page=1, per_page=2)
    last_page = SipConfigRepository.list_all(page=3, per_page=2)

    assert [r.id for r in first_page.items] == [1, 2]
    assert first_page.total == 5
    assert first_page.pages == 3
    assert [r.id for r in last_page.items] == [5]


def test_list_all_status_filter(session, seed_pool):
    seed_pool(3)
    SipConfigRepository.update_assignment(2, 50)
    session.commit()

    assigned = SipConfigRepository.list_all(status='assigned')
    available = SipConfigRepository.list_all(status='available')

    assert [r.id for r in assigned.items] == [2]
    assert [r.id for r in available.items] == [1, 3]


def test_list_available_ids_respects_limit(session, seed_pool):
    seed_pool(4)
    SipConfigRepository.update_assignment(1, 60)
    session.commit()

    assert SipConfigRepository.list_available_ids(limit=2) == [2, 3]
    assert SipConfigRepository.list_available_ids(limit=0) == []


def test_get_by_id_not_found(session):
    assert SipConfigRepository.get_by_id(12345) is None


def test_update_assignment_compare_and_swap(session, seed_pool):
    """
    The conditional update only succeeds when the current owner matches the
    expected one.
    """
    seed_pool(1)

    record = SipConfigRepository.update_assignment(1, 70, username="gina", user_email="gina@example.org")
    session.commit()
    assert record.assigned_user_id == 70
    assert record.assigned_username == "gina"

    # Precondition "currently available" no longer holds
    with pytest.raises(ConflictError):
        SipConfigRepository.update_assignment(1, 71)
    # Releasing on behalf of the wrong owner fails too
    with pytest.raises(ConflictError):
        SipConfigRepository.update_assignment(1, None, expected_user_id=71)

    released = SipConfigRepository.update_assignment(1, None, expected_user_id=70)
    session.commit()
    assert released.assigned_user_id is None
    assert released.assigned_username is None


def test_update_assignment_force_ignores_owner(session, seed_pool):
    seed_pool(1)
    SipConfigRepository.update_assignment(1, 80)
    session.commit()

    record = SipConfigRepository.update_assignment(1, None, force=True)
    session.commit()
    assert record.is_available


def test_update_assignment_not_found(session, seed_pool):
    seed_pool(1)
    with pytest.raises(ResourceNotFound):
        SipConfigRepository.update_assignment(99, 1)


def test_update_assignment_unique_owner(session, seed_pool):
    """The database refuses to give one user two records."""
    seed_pool(2)
    SipConfigRepository.update_assignment(1, 90)
    session.commit()

    with pytest.raises(ConflictError, match="already holds"):
        SipConfigRepository.update_assignment(2, 90)

    assert SipConfigRepository.get_by_id(2).assigned_user_id is None
    assert SipConfigRepository.get_by_user(90).id == 1


def test_counts(session, seed_pool):
    seed_pool(4)
    SipConfigRepository.update_assignment(3, 1)
    session.commit()

    assert SipConfigRepository.count_available() == 3
    assert SipConfigRepository.count_by_state() == (4, 3)


def test_counts_on_empty_table(session):
    assert SipConfigRepository.count_available() == 0
    assert SipConfigRepository.count_by_state() == (0, 0)


def test_update_details_on_available_record(session, seed_pool):
    seed_pool(1)
    record = SipConfigRepository.update_details(1, server="sip2.example.org", transport="tcp", port=5080)
    session.commit()

    assert record.server == "sip2.example.org"
    assert record.transport == "TCP"
    assert record.port == 5080


def test_update_details_ignores_owner_columns(session, seed_pool):
    seed_pool(1)
    record = SipConfigRepository.update_details(1, assigned_user_id=5, domain="other.example.org")
    session.commit()

    assert record.domain == "other.example.org"
    assert record.assigned_user_id is None


def test_update_details_refused_while_assigned(session, seed_pool):
    seed_pool(1)
    SipConfigRepository.update_assignment(1, 3)
    session.commit()

    with pytest.raises(ConflictError):
        SipConfigRepository.update_details(1, password="new-secret")
    assert SipConfigRepository.get_by_id(1).password == "secret-1"


def test_update_details_not_found(session):
    with pytest.raises(ResourceNotFound):
        SipConfigRepository.update_details(7, password="x")


def test_pool_range_restricts_queries(app, session, seed_pool, monkeypatch):
    """
    GIVEN records with extensions 2399..2402 and the range 2400-2401 enabled
    THEN listing, counting and candidate selection only see 2400 and 2401.
    """
    seed_pool(4, first_extension=2399)
    monkeypatch.setitem(app.config, 'SIP_POOL_RANGE_ENABLED', True)
    monkeypatch.setitem(app.config, 'SIP_POOL_RANGE_START', 2400)
    monkeypatch.setitem(app.config, 'SIP_POOL_RANGE_END', 2401)

    assert SipConfigRepository.count_by_state() == (2, 2)
    assert SipConfigRepository.list_available_ids(limit=10) == [2, 3]
    assert [r.extension for r in SipConfigRepository.list_all().items] == [2400, 2401]
    # Lookup by id is not range-filtered
    assert SipConfigRepository.get_by_id(1).extension == 2399


def test_disabled_records_leave_rotation(session, seed_pool):
    """
    GIVEN 4 records, record 2 disabled and record 3 assigned
    THEN candidate, count and listing queries treat record 2 as neither
    available nor part of the pool total.
    """
    seed_pool(4)
    SipConfigRepository.update_details(2, enabled=False)
    SipConfigRepository.update_assignment(3, 10)
    session.commit()

    assert SipConfigRepository.list_available_ids(limit=10) == [1, 4]
    assert SipConfigRepository.count_available() == 2
    assert SipConfigRepository.count_by_state() == (3, 2)
    assert [r.id for r in SipConfigRepository.list_all(status='available').items] == [1, 4]
    assert [r.id for r in SipConfigRepository.list_all(status='disabled').items] == [2]
    assert SipConfigRepository.list_all().total == 4


def test_update_assignment_refuses_disabled_record(session, seed_pool):
    seed_pool(1)
    SipConfigRepository.update_details(1, enabled=False)
    session.commit()

    with pytest.raises(ConflictError):
        SipConfigRepository.update_assignment(1, 11)
    assert SipConfigRepository.get_by_id(1).assigned_user_id is None


def test_enabled_toggle_refused_while_assigned(session, seed_pool):
    seed_pool(1)
    SipConfigRepository.update_assignment(1, 12)
    session.commit()

    with pytest.raises(ConflictError):
        SipConfigRepository.update_details(1, enabled=False)
    assert SipConfigRepository.get_by_id(1).enabled is True


def test_add_record_disabled(session):
    record = SipConfigRepository.add_record(
        username="2450", password="pw", domain="sip.example.org", server="sip.example.org",
        enabled=False,
    )
    session.commit()

    assert record.status == "disabled"
    assert not record.is_available
    assert SipConfigRepository.count_available() == 0
