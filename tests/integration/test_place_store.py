from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.database import PlaceDB, PlaceStore, StoreError, create_tables


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    create_tables(bind=engine)
    db = sessionmaker(bind=engine)()
    now = datetime(2024, 5, 1)
    db.add_all(
        [
            PlaceDB(id="a", name="Court A", latitude=52.5, longitude=13.4, created_at=now),
            PlaceDB(id="b", name="Court B", latitude=52.6, longitude=13.5, street="Main St",
                    created_at=now + timedelta(days=1)),
            PlaceDB(id="c", name="Court C", latitude=52.7, longitude=13.6, street="Main St",
                    city="Berlin", created_at=now + timedelta(days=2)),
        ]
    )
    db.commit()
    yield db
    db.close()


def test_select_returns_matching_records(session):
    store = PlaceStore(session)

    records = sorted(store.select(["a", "c", "zzz"]), key=lambda r: r.id)

    assert [r.id for r in records] == ["a", "c"]
    assert records[0].needs_address is True
    assert records[1].needs_address is False


def test_select_empty_ids(session):
    assert PlaceStore(session).select([]) == []


def test_update_writes_address(session):
    store = PlaceStore(session)

    ok = store.update("a", {"street": "Unter den Linden", "house_number": "1", "city": "Berlin"})

    assert ok is True
    record = store.select(["a"])[0]
    assert record.street == "Unter den Linden"
    assert record.city == "Berlin"
    assert record.postcode is None


def test_update_unknown_id_fails(session):
    assert PlaceStore(session).update("zzz", {"street": "x", "city": "y"}) is False


def test_update_database_error_returns_false(session, monkeypatch):
    store = PlaceStore(session)

    def broken_commit():
        raise OperationalError("UPDATE", {}, Exception("locked"))

    monkeypatch.setattr(session, "commit", broken_commit)

    assert store.update("a", {"street": "x", "city": "y"}) is False


def test_select_database_error_raises_store_error(session, monkeypatch):
    store = PlaceStore(session)

    def broken_query(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("gone"))

    monkeypatch.setattr(session, "query", broken_query)

    with pytest.raises(StoreError):
        store.select(["a"])


def test_find_and_count_candidates(session):
    store = PlaceStore(session)

    places = store.find_candidates(limit=10, offset=0)

    assert [p.id for p in places] == ["b", "a"]
    assert store.count_candidates() == 2
    assert [p.id for p in store.find_candidates(limit=1, offset=1)] == ["a"]


def test_update_leaves_unnamed_columns_untouched(session):
    store = PlaceStore(session)
    session.query(PlaceDB).filter(PlaceDB.id == "b").update({"postcode": "10115"})
    session.commit()

    assert store.update("b", {"city": "Berlin"}) is True

    record = store.select(["b"])[0]
    assert record.street == "Main St"
    assert record.postcode == "10115"
    assert record.city == "Berlin"
    assert record.needs_address is False


def test_update_without_address_fields_fails(session):
    assert PlaceStore(session).update("a", {"district": "Mitte"}) is False


def test_created_at_defaults_on_insert(session):
    session.add(PlaceDB(id="new", latitude=1.0, longitude=2.0))
    session.commit()

    place = session.query(PlaceDB).filter(PlaceDB.id == "new").one()

    assert isinstance(place.created_at, datetime)
