# tests/test_sync.py
from __future__ import annotations

import threading

import pytest

from vetclinic.database.errors import ValidationError
from vetclinic.database.models import Customer, DeletedRef
from vetclinic.modules.sync import OFFLINE, ONLINE, PENDING, SYNCING, SyncService


def _queue_three(db):
    cid = db.save_customer("Queued")
    db.save_supplier("Queued Supplier")
    db.delete_customer(cid)
    return cid


def test_mutations_are_queued_in_order(db):
    cid = _queue_three(db)
    ops = db.get_sync_queue()

    assert [(op.collection, op.action) for op in ops] == [
        ("customers", "create"),
        ("suppliers", "create"),
        ("customers", "delete"),
    ]
    assert isinstance(ops[0].payload, Customer)
    assert ops[2].payload == DeletedRef(id=cid)
    assert [op.id for op in ops] == ["sync1", "sync2", "sync3"]


def test_failed_mutation_queues_nothing(db):
    with pytest.raises(ValidationError):
        db.save_customer("")
    assert db.get_sync_queue() == []


def test_drain_sends_oldest_first(db, bus, qtbot):
    _queue_three(db)
    sent = []
    service = SyncService(db, transport=sent.append, bus=bus)

    with qtbot.waitSignal(service.drained, timeout=1000) as blocker:
        assert service.drain() == 3

    assert blocker.args == [3]
    assert [op.id for op in sent] == ["sync1", "sync2", "sync3"]
    assert db.get_sync_queue() == []
    assert (service.status, service.pending) == (ONLINE, 0)


def test_transport_failure_stops_the_round(db, bus):
    _queue_three(db)
    calls = []

    def flaky(op):
        calls.append(op.id)
        if op.id == "sync2":
            raise ConnectionError("peer unreachable")

    service = SyncService(db, transport=flaky, bus=bus)
    assert service.drain() == 1

    assert calls == ["sync1", "sync2"]
    assert [op.id for op in db.get_sync_queue()] == ["sync2", "sync3"]
    assert (service.status, service.pending) == (PENDING, 2)


def test_offline_service_does_not_drain(db, bus):
    _queue_three(db)
    sent = []
    service = SyncService(db, transport=sent.append, bus=bus, online=False)

    assert service.refresh() == 3
    assert service.status == OFFLINE
    assert service.drain() == 0
    assert service.drain_async() is False
    assert sent == []


def test_status_changes_are_published(db, bus):
    seen, on_bus = [], []
    service = SyncService(db, transport=lambda op: None, bus=bus)
    service.status_changed.connect(lambda status, n: seen.append((status, n)))
    bus.sync_status_changed.connect(lambda status, n: on_bus.append((status, n)))

    db.save_customer("Someone")
    service.refresh()
    service.refresh()  # unchanged -> no second emission
    service.set_online(False)

    assert seen == [(PENDING, 1), (OFFLINE, 1)]
    assert on_bus == seen


def test_periodic_start_drains_in_background(db, bus, qtbot):
    _queue_three(db)
    sent = []
    service = SyncService(db, transport=sent.append, bus=bus)

    with qtbot.waitSignal(service.drained, timeout=5000):
        service.start(interval_ms=60_000)
    service.stop()

    assert len(sent) == 3
    assert db.get_sync_queue() == []


def test_status_and_pending_change_together_across_threads(db, bus):
    service = SyncService(db, bus=bus)
    torn = []
    done = threading.Event()

    def writer(offset):
        for n in range(offset, offset + 2000, 2):
            # odd counts are published as SYNCING, even counts as PENDING
            service._publish(SYNCING if n % 2 else PENDING, n)

    def reader():
        while not done.is_set():
            status, pending = service.state()
            if pending and status != (SYNCING if pending % 2 else PENDING):
                torn.append((status, pending))

    readers = [threading.Thread(target=reader) for _ in range(2)]
    writers = [threading.Thread(target=writer, args=(start,)) for start in (1, 2)]
    for t in readers + writers:
        t.start()
    for t in writers:
        t.join()
    done.set()
    for t in readers:
        t.join()

    assert torn == []
    status, pending = service.state()
    assert status == (SYNCING if pending % 2 else PENDING)
