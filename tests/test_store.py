from datetime import date

import pytest

from tally import (
    EngineConfig,
    FileSnapshotStore,
    MemoryAccounts,
    MemoryLedger,
    MemorySnapshotStore,
    SnapshotService,
    TallyError,
    make_snapshot_store,
)
from tally.period import PeriodStatus


@pytest.fixture
def empty_snapshot(make_period):
    service = SnapshotService(MemoryLedger(), MemoryAccounts(), MemorySnapshotStore())
    return service.generate_snapshot("acme", make_period(2026, 1), "closer")


@pytest.fixture
def file_service(ledger, directory, tmp_path):
    return SnapshotService(ledger, directory, FileSnapshotStore(tmp_path))


def test_file_store_layout(file_service, post, cash, revenue, make_period, tmp_path):
    post(date(2026, 1, 5), cash, revenue, 1000)
    file_service.generate_snapshot("acme", make_period(2026, 1), "closer")
    assert (tmp_path / "acme" / "snapshots" / "2026-01.json").exists()


def test_file_store_round_trip_drives_incremental_path(
    file_service, jan_to_mar, make_period
):
    january = file_service.generate_snapshot("acme", make_period(2026, 1), "closer")
    assert file_service.get_snapshot("acme", "2026-01") == january
    february, stats = file_service.generate_snapshot_with_stats(
        "acme", make_period(2026, 2), "closer"
    )
    assert stats.path.value == "incremental"
    assert february.total_cumulative_debit == 1200


def test_file_store_overwrites(file_service, post, cash, revenue, make_period):
    file_service.generate_snapshot("acme", make_period(2026, 1), "first")
    post(date(2026, 1, 20), cash, revenue, 3)
    file_service.generate_snapshot("acme", make_period(2026, 1), "second")
    snapshot = file_service.get_snapshot("acme", "2026-01")
    assert snapshot.generated_by == "second"
    assert snapshot.total_cumulative_debit == 3


def test_file_store_delete(file_service, make_period):
    file_service.generate_snapshot("acme", make_period(2026, 1), "closer")
    file_service.delete_snapshot("acme", "2026-01")
    assert file_service.get_snapshot("acme", "2026-01") is None
    file_service.delete_snapshot("acme", "2026-01")


@pytest.mark.parametrize("tenant", ["", "..", "a/b", "a\\b"])
def test_bad_tenant_ids(tmp_path, tenant):
    with pytest.raises(TallyError):
        FileSnapshotStore(tmp_path).get(tenant, "2026-01")


@pytest.mark.parametrize(
    "key",
    ["", "../../other/snapshots/2026-01", "2026-13", "2026-00", "2026-1", "26-01", "2026-01/"],
)
@pytest.mark.parametrize("file_backed", [True, False])
def test_bad_snapshot_keys(tmp_path, key, file_backed, empty_snapshot):
    store = FileSnapshotStore(tmp_path) if file_backed else MemorySnapshotStore()
    with pytest.raises(TallyError):
        store.get("acme", key)
    with pytest.raises(TallyError):
        store.delete("acme", key)
    with pytest.raises(TallyError):
        store.put("acme", key, empty_snapshot)


def test_key_cannot_reach_other_tenant(file_service, make_period, tmp_path):
    file_service.generate_snapshot("other", make_period(2026, 1), "closer")
    with pytest.raises(TallyError):
        file_service.get_snapshot("acme", "../../other/snapshots/2026-01")
    with pytest.raises(TallyError):
        file_service.delete_snapshot("acme", "../../other/snapshots/2026-01")
    assert (tmp_path / "other" / "snapshots" / "2026-01.json").exists()
    assert file_service.get_snapshot("acme", "2026-01") is None


def test_file_store_leaves_no_temporary_files(file_service, make_period, tmp_path):
    file_service.generate_snapshot("acme", make_period(2026, 1), "closer")
    file_service.generate_snapshot("acme", make_period(2026, 1), "closer")
    folder = tmp_path / "acme" / "snapshots"
    assert [p.name for p in folder.iterdir()] == ["2026-01.json"]


def test_failed_write_keeps_previous_snapshot(
    file_service, post, cash, revenue, make_period, tmp_path, monkeypatch
):
    post(date(2026, 1, 5), cash, revenue, 1000)
    file_service.generate_snapshot("acme", make_period(2026, 1), "first")

    def disk_full(src, dst):
        raise OSError("no space left on device")

    monkeypatch.setattr("tally.store.os.replace", disk_full)
    post(date(2026, 1, 20), cash, revenue, 3)
    with pytest.raises(OSError):
        file_service.generate_snapshot("acme", make_period(2026, 1), "second")
    snapshot = file_service.get_snapshot("acme", "2026-01")
    assert snapshot.generated_by == "first"
    assert snapshot.total_cumulative_debit == 1000
    folder = tmp_path / "acme" / "snapshots"
    assert [p.name for p in folder.iterdir()] == ["2026-01.json"]


def test_memory_store_keeps_tenants_apart(service, make_period):
    service.generate_snapshot("acme", make_period(2026, 1), "x")
    store = service.snapshots
    assert isinstance(store, MemorySnapshotStore)
    assert store.get("other", "2026-01") is None
    store.delete("other", "2026-01")
    assert store.keys("acme") == ["2026-01"]


def days(entries):
    return sorted({e.entry_date.day for e in entries})


def test_ledger_query_bounds(ledger, post, cash, revenue):
    post(date(2026, 1, 1), cash, revenue, 1)
    post(date(2026, 1, 15), cash, revenue, 2)
    post(date(2026, 1, 31), cash, revenue, 3)
    assert days(ledger.query("acme", date(2026, 1, 31), start=date(2026, 1, 15))) == [15, 31]
    assert days(ledger.query("acme", date(2026, 1, 31), after=date(2026, 1, 15))) == [31]
    assert days(ledger.query("acme", date(2026, 1, 14))) == [1]


def test_periods_registry(periods):
    closed = periods.set_status("acme", "fp-2026-01", PeriodStatus.Closed, "ann")
    assert closed.closed_by == "ann"
    locked = periods.set_status("acme", "fp-2026-01", PeriodStatus.Locked, "bob")
    assert locked.closed_by == "ann"
    assert periods.get("acme", "fp-2026-01").status == PeriodStatus.Locked


def test_periods_registry_unknown_period(periods):
    with pytest.raises(TallyError):
        periods.get("acme", "fp-1999-01")
    with pytest.raises(TallyError):
        periods.get("other", "fp-2026-01")


def test_make_snapshot_store(tmp_path):
    assert isinstance(make_snapshot_store(EngineConfig()), MemorySnapshotStore)
    store = make_snapshot_store(EngineConfig(snapshot_dir=tmp_path))
    assert isinstance(store, FileSnapshotStore)
    assert store.root == tmp_path
