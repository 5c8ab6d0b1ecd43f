import sqlite3
from http import HTTPStatus

import pytest

from microceph.db.schema import Database, StatusError
from microceph.db.services import (
    Service,
    ServiceFilter,
    create_service,
    delete_service,
    delete_services,
    get_service,
    get_service_id,
    get_services,
    service_exists,
    update_service,
)


@pytest.fixture
def db():
    database = Database()
    database.add_member("node1", "10.0.0.1:7443")
    database.add_member("node2", "10.0.0.2:7443")
    yield database
    database.close()


def _populate(db):
    with db.transaction() as tx:
        for member, name in [
            ("node2", "mon"),
            ("node1", "mgr"),
            ("node1", "mon"),
            ("node2", "mds"),
        ]:
            create_service(tx, Service(member=member, service=name))


def _pairs(services):
    return [(s.member, s.service) for s in services]


def test_get_services_ordered_by_member_then_name(db):
    _populate(db)
    with db.transaction() as tx:
        result = get_services(tx)
    assert _pairs(result) == [
        ("node1", "mgr"),
        ("node1", "mon"),
        ("node2", "mds"),
        ("node2", "mon"),
    ]


def test_filter_by_service(db):
    _populate(db)
    with db.transaction() as tx:
        result = get_services(tx, ServiceFilter(service="mon"))
    assert _pairs(result) == [("node1", "mon"), ("node2", "mon")]


def test_filter_by_member(db):
    _populate(db)
    with db.transaction() as tx:
        result = get_services(tx, ServiceFilter(member="node2"))
    assert _pairs(result) == [("node2", "mds"), ("node2", "mon")]


def test_filter_by_member_and_service(db):
    _populate(db)
    with db.transaction() as tx:
        result = get_services(tx, ServiceFilter(member="node1", service="mgr"))
    assert _pairs(result) == [("node1", "mgr")]


def test_multiple_filters_are_combined_with_or(db):
    _populate(db)
    with db.transaction() as tx:
        result = get_services(
            tx, ServiceFilter(service="mds"), ServiceFilter(member="node1")
        )
    assert _pairs(result) == [("node1", "mgr"), ("node1", "mon"), ("node2", "mds")]


def test_empty_filter_rejected(db):
    with db.transaction() as tx:
        with pytest.raises(ValueError, match="Cannot filter on empty ServiceFilter"):
            get_services(tx, ServiceFilter())


def test_get_service_and_id_match_created(db):
    with db.transaction() as tx:
        new_id = create_service(tx, Service(member="node1", service="mon"))
        found = get_service(tx, "node1", "mon")
        assert get_service_id(tx, "node1", "mon") == new_id
    assert found == Service(member="node1", service="mon", id=new_id)


def test_get_service_missing(db):
    with db.transaction() as tx:
        with pytest.raises(StatusError) as info:
            get_service(tx, "node1", "mon")
    assert info.value.status == HTTPStatus.NOT_FOUND
    assert info.value.message == "Service not found"


def test_get_service_id_missing(db):
    with db.transaction() as tx:
        with pytest.raises(StatusError) as info:
            get_service_id(tx, "node2", "mgr")
    assert info.value.status == HTTPStatus.NOT_FOUND


def test_service_exists(db):
    with db.transaction() as tx:
        assert service_exists(tx, "node1", "mon") is False
        create_service(tx, Service(member="node1", service="mon"))
        assert service_exists(tx, "node1", "mon") is True
        assert service_exists(tx, "node2", "mon") is False


def test_create_duplicate_conflicts(db):
    with db.transaction() as tx:
        create_service(tx, Service(member="node1", service="mon"))
        with pytest.raises(StatusError) as info:
            create_service(tx, Service(member="node1", service="mon"))
    assert info.value.status == HTTPStatus.CONFLICT
    assert info.value.message == 'This "services" entry already exists'


def test_create_for_unknown_member_fails(db):
    with db.transaction() as tx:
        with pytest.raises(sqlite3.IntegrityError):
            create_service(tx, Service(member="ghost", service="mon"))


def test_delete_service(db):
    _populate(db)
    with db.transaction() as tx:
        delete_service(tx, "node1", "mon")
        assert service_exists(tx, "node1", "mon") is False
        assert _pairs(get_services(tx, ServiceFilter(member="node1"))) == [
            ("node1", "mgr")
        ]


def test_delete_missing_service(db):
    with db.transaction() as tx:
        with pytest.raises(StatusError) as info:
            delete_service(tx, "node1", "rgw")
    assert info.value.status == HTTPStatus.NOT_FOUND


def test_delete_services_of_member(db):
    _populate(db)
    with db.transaction() as tx:
        delete_services(tx, "node1")
        remaining = get_services(tx)
    assert _pairs(remaining) == [("node2", "mds"), ("node2", "mon")]


def test_delete_services_without_records_is_noop(db):
    with db.transaction() as tx:
        delete_services(tx, "node1")
        assert get_services(tx) == []


def test_update_service(db):
    with db.transaction() as tx:
        old_id = create_service(tx, Service(member="node1", service="mon"))
        update_service(tx, "node1", "mon", Service(member="node2", service="rgw"))
        assert service_exists(tx, "node1", "mon") is False
        assert get_service(tx, "node2", "rgw").id == old_id


def test_update_missing_service(db):
    with db.transaction() as tx:
        with pytest.raises(StatusError) as info:
            update_service(tx, "node1", "mon", Service(member="node1", service="mgr"))
    assert info.value.status == HTTPStatus.NOT_FOUND


def test_failed_transaction_rolls_back(db):
    with pytest.raises(StatusError):
        with db.transaction() as tx:
            create_service(tx, Service(member="node1", service="mon"))
            create_service(tx, Service(member="node1", service="mon"))
    with db.transaction() as tx:
        assert get_services(tx) == []