import threading
import uuid
from datetime import datetime, timezone

import pytest

from meter_reader.measurements import (
    ConfirmationDuplicate, DuplicateGuard, DuplicateReport, Measurement, MeasureNotFound,
    MeasureType, MeasurementStore,
)

T0 = datetime(2024, 1, 10, 10, tzinfo=timezone.utc)
T1 = datetime(2024, 2, 10, 10, tzinfo=timezone.utc)


def make_record(reading_timestamp=T0, reading_type=MeasureType.WATER, customer_code="C1", value=100.0):
    return Measurement(
        id=str(uuid.uuid4()),
        customer_code=customer_code,
        reading_timestamp=reading_timestamp,
        reading_type=reading_type,
        recognized_value=value,
        artifact_reference="http://testserver/images/x.jpg",
    )


def test_create_and_find(store):
    record = make_record()
    assert store.create(record, DuplicateGuard()) == record.id

    found = store.find_by_id(record.id)
    assert found == record
    assert found.confirmed is False and found.confirmed_value is None
    assert store.find_by_id("missing") is None
    assert len(store) == 1


def test_reads_return_copies(store):
    record = make_record()
    store.create(record)

    found = store.find_by_id(record.id)
    found.confirmed = True
    assert store.find_by_id(record.id).confirmed is False


def test_find_all_keeps_insertion_order(store):
    records = [make_record(reading_timestamp=datetime(2024, month, 1, tzinfo=timezone.utc)) for month in (3, 1, 2)]
    for record in records:
        store.create(record)

    assert [r.id for r in store.find_all()] == [r.id for r in records]
    assert [r.id for r in store.find_all(lambda r: r.reading_timestamp.month > 1)] == [records[0].id, records[2].id]


def test_same_instant_and_type_is_a_duplicate(store):
    guard = DuplicateGuard()
    store.create(make_record(), guard)

    with pytest.raises(DuplicateReport):
        store.create(make_record(), guard)
    assert len(store) == 1


def test_duplicate_key_ignores_customer(store):
    guard = DuplicateGuard()
    store.create(make_record(customer_code="C1"), guard)

    with pytest.raises(DuplicateReport):
        store.create(make_record(customer_code="C2"), guard)


def test_same_instant_other_type_is_allowed(store):
    guard = DuplicateGuard()
    store.create(make_record(reading_type=MeasureType.GAS), guard)
    store.create(make_record(reading_type=MeasureType.WATER), guard)
    assert len(store) == 2

    # Still blocked when the matching record is not the first at that instant
    with pytest.raises(DuplicateReport):
        store.create(make_record(reading_type=MeasureType.WATER), guard)


def test_same_month_different_instant_is_allowed(store):
    guard = DuplicateGuard()
    store.create(make_record(reading_timestamp=T0), guard)
    store.create(make_record(reading_timestamp=T0.replace(day=11)), guard)
    assert len(store) == 2


def test_guard_check_reads_the_store(store):
    guard = DuplicateGuard()
    guard.check(store, T0, MeasureType.WATER)
    store.create(make_record(), guard)

    with pytest.raises(DuplicateReport):
        guard.check(store, T0, MeasureType.WATER)
    guard.check(store, T0, MeasureType.GAS)
    guard.check(store, T1, MeasureType.WATER)


def test_reused_id_is_rejected(store):
    record = make_record()
    store.create(record)
    clash = make_record(reading_timestamp=T1)
    clash.id = record.id
    with pytest.raises(ValueError):
        store.create(clash)


def test_confirm_once(store):
    record = make_record()
    store.create(record)

    confirmed = store.confirm(record.id, 123.4)
    assert confirmed.confirmed is True
    assert confirmed.confirmed_value == 123.4
    assert confirmed.recognized_value == 100.0

    with pytest.raises(ConfirmationDuplicate):
        store.confirm(record.id, 999.0)
    assert store.find_by_id(record.id).confirmed_value == 123.4


def test_confirm_unknown_id(store):
    store.create(make_record())
    with pytest.raises(MeasureNotFound):
        store.confirm("missing", 1.0)
    assert all(not r.confirmed for r in store.find_all())


def test_concurrent_inserts_with_same_key_store_one(store):
    guard = DuplicateGuard()
    outcomes = []
    start = threading.Barrier(8)

    def submit():
        start.wait()
        try:
            store.create(make_record(), guard)
            outcomes.append("created")
        except DuplicateReport:
            outcomes.append("duplicate")

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("created") == 1
    assert outcomes.count("duplicate") == 7
    assert len(store) == 1


def test_concurrent_confirmations_succeed_once(store):
    record = make_record()
    store.create(record)
    outcomes = []
    start = threading.Barrier(8)

    def confirm(value):
        start.wait()
        try:
            store.confirm(record.id, value)
            outcomes.append(value)
        except ConfirmationDuplicate:
            outcomes.append(None)

    threads = [threading.Thread(target=confirm, args=(float(i),)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [value for value in outcomes if value is not None]
    assert len(winners) == 1
    assert store.find_by_id(record.id).confirmed_value == winners[0]
