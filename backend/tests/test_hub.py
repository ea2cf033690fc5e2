from __future__ import annotations

import asyncio
import json

import pytest

from core.hub import BroadcastHub
from core.state_store import StateStore


def _scan(record):
    return {"type": "client_add_scan", "data": record}


@pytest.mark.asyncio
async def test_connect_sends_snapshot_first(hub, fake_socket, make_record) -> None:
    early = fake_socket()
    await hub.connect(early)
    await hub.handle(early, _scan(make_record("r1")))

    late = fake_socket()
    await hub.connect(late)

    assert late.sent[0]["type"] == "init_data"
    assert late.sent[0]["data"] == hub.store.snapshot()
    assert [r["id"] for r in late.sent[0]["data"]["history"]] == ["r1"]


@pytest.mark.asyncio
async def test_scans_prepend_in_arrival_order(hub, fake_socket, make_record) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    for i, rid in enumerate(("r1", "r2", "r3"), start=1):
        await hub.handle(a, _scan(make_record(rid, stt=i)))

    assert [r.id for r in hub.store.history] == ["r3", "r2", "r1"]
    last = b.sent[-1]
    assert last["type"] == "server_update_history"
    assert [r["id"] for r in last["data"]] == ["r3", "r2", "r1"]
    # the sender gets its own broadcast too
    assert a.types() == b.types() == ["init_data"] + ["server_update_history"] * 3


@pytest.mark.asyncio
async def test_station_b_sees_scan_from_station_a(hub, fake_socket, make_record) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    await hub.handle(a, _scan(make_record("r1", stt=1, productCode="ABC123")))

    msg = b.sent[-1]
    assert msg["type"] == "server_update_history"
    assert len(msg["data"]) == 1
    assert msg["data"][0]["id"] == "r1"
    assert msg["data"][0]["productCode"] == "ABC123"


@pytest.mark.asyncio
async def test_retransmitted_scan_is_duplicated(hub, fake_socket, make_record) -> None:
    a = fake_socket()
    await hub.connect(a)
    await hub.handle(a, _scan(make_record("r1")))
    await hub.handle(a, _scan(make_record("r1")))
    assert [r.id for r in hub.store.history] == ["r1", "r1"]


@pytest.mark.asyncio
async def test_reset_clears_history_and_employees_only(hub, fake_socket, make_record) -> None:
    a = fake_socket()
    await hub.connect(a)
    stages = [
        {"id": 1, "name": "Kiểm tra", "enableMeasurement": True, "measurementStandard": "12.5"},
        {"id": 2, "name": "Đóng gói"},
    ]
    await hub.handle(a, {"type": "client_update_stages", "data": stages})
    await hub.handle(a, _scan(make_record("r1")))
    await hub.handle(a, {"type": "client_update_employee", "data": {"stageId": 1, "employeeId": "NV01"}})
    stages_before = hub.store.stages_wire()

    await hub.handle(a, {"type": "client_reset_data"})

    assert hub.store.history == []
    assert hub.store.stage_employees == {}
    assert hub.store.stages_wire() == stages_before
    assert a.sent[-1] == {"type": "init_data", "data": hub.store.snapshot()}


@pytest.mark.asyncio
async def test_update_stages_broadcasts_full_list(hub, fake_socket) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)
    await hub.handle(a, {"type": "client_update_stages", "data": [{"id": 3, "name": "QC"}]})
    assert b.sent[-1] == {"type": "server_update_stages", "data": [{"id": 3, "name": "QC"}]}


@pytest.mark.asyncio
async def test_concurrent_employee_updates_last_processed_wins(hub, fake_socket) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    await asyncio.gather(
        hub.handle(a, {"type": "client_update_employee", "data": {"stageId": 1, "employeeId": "NV01"}}),
        hub.handle(b, {"type": "client_update_employee", "data": {"stageId": 1, "employeeId": "NV02"}}),
    )

    assert hub.store.stage_employees == {"1": "NV02"}
    updates = [m["data"] for m in a.sent if m["type"] == "server_update_employees"]
    assert updates == [{"1": "NV01"}, {"1": "NV02"}]


@pytest.mark.asyncio
async def test_unknown_event_goes_to_sender_only(hub, fake_socket) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    await hub.handle(a, {"type": "client_delete_everything"})

    assert a.sent[-1]["type"] == "error"
    assert "Unknown message type" in a.sent[-1]["data"]["message"]
    assert b.types() == ["init_data"]


@pytest.mark.asyncio
async def test_malformed_scan_is_rejected_without_mutation(hub, fake_socket) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    await hub.handle(a, _scan({"productCode": "ABC123", "status": "valid"}))
    await hub.handle(a, "not-an-object")

    assert hub.store.history == []
    assert a.types() == ["init_data", "error", "error"]
    assert b.types() == ["init_data"]


@pytest.mark.asyncio
async def test_duplicate_stage_ids_rejected(hub, fake_socket) -> None:
    a = fake_socket()
    await hub.connect(a)
    await hub.handle(a, {"type": "client_update_stages", "data": [{"id": 1, "name": "A"}, {"id": 1, "name": "B"}]})
    assert a.sent[-1]["type"] == "error"
    assert [s.id for s in hub.store.stages] == [1]
    assert hub.store.stages[0].name == "Kiểm tra sản phẩm"


@pytest.mark.asyncio
async def test_broken_station_is_dropped(hub, fake_socket, make_record) -> None:
    good, broken = fake_socket(), fake_socket()
    await hub.connect(good)
    await hub.connect(broken)
    broken.fail = True

    await hub.handle(good, _scan(make_record("r1")))

    assert broken not in hub.manager.active
    assert good in hub.manager.active
    assert good.sent[-1]["type"] == "server_update_history"


@pytest.mark.asyncio
async def test_disconnected_station_misses_broadcast(hub, fake_socket, make_record) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)
    await hub.disconnect(b)

    await hub.handle(a, _scan(make_record("r1")))
    assert b.types() == ["init_data"]

    # reconnect resynchronizes from a fresh snapshot
    b.sent.clear()
    await hub.connect(b)
    assert b.sent[0]["data"]["history"][0]["id"] == "r1"


@pytest.mark.asyncio
async def test_scan_is_persisted(data_file, writer, fake_socket, make_record) -> None:
    hub = BroadcastHub(StateStore.from_file(data_file, writer))
    a = fake_socket()
    await hub.connect(a)

    await hub.handle(a, _scan(make_record("r1", stt=1, productCode="ABC123")))
    await asyncio.to_thread(writer.wait_idle)

    saved = json.loads(data_file.read_text(encoding="utf-8"))
    assert [r["id"] for r in saved["history"]] == ["r1"]
    assert saved["history"][0]["productCode"] == "ABC123"


@pytest.mark.asyncio
async def test_set_field_whitelist_updates_one_slot(hub, fake_socket) -> None:
    a = fake_socket()
    await hub.connect(a)

    stage = await hub.set_field_whitelist(1, 2, "A1 B2")

    assert stage.additionalFieldValidationLists == ["", "", "A1 B2", "", "", "", "", ""]
    assert hub.store.get_stage(1).additionalFieldValidationLists[2] == "A1 B2"
    assert a.sent[-1]["type"] == "server_update_stages"


@pytest.mark.asyncio
async def test_numeric_measurement_is_stored_as_sent(hub, fake_socket, make_record) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    await hub.handle(a, _scan(make_record("r1", measurement=12.5, stt="7", defectCode=None)))

    assert a.types() == ["init_data", "server_update_history"]
    stored = b.sent[-1]["data"][0]
    assert stored["measurement"] == 12.5
    assert stored["stt"] == "7"
    assert "defectCode" in stored and stored["defectCode"] is None
    assert "note" not in stored


@pytest.mark.asyncio
async def test_null_employee_clears_assignment(hub, fake_socket) -> None:
    a, b = fake_socket(), fake_socket()
    await hub.connect(a)
    await hub.connect(b)

    await hub.handle(a, {"type": "client_update_employee", "data": {"stageId": 1, "employeeId": "NV01"}})
    await hub.handle(a, {"type": "client_update_employee", "data": {"stageId": 1, "employeeId": None}})

    assert "error" not in a.types()
    assert hub.store.stage_employees == {"1": None}
    assert b.sent[-1] == {"type": "server_update_employees", "data": {"1": None}}


@pytest.mark.asyncio
async def test_employee_update_without_stage_is_rejected(hub, fake_socket) -> None:
    a = fake_socket()
    await hub.connect(a)
    await hub.handle(a, {"type": "client_update_employee", "data": {"employeeId": "NV01"}})
    assert a.sent[-1]["type"] == "error"
    assert hub.store.stage_employees == {}


@pytest.mark.asyncio
async def test_partially_bad_file_keeps_good_history(data_file, writer, fake_socket, make_record) -> None:
    data_file.write_text(
        json.dumps({
            "history": [
                make_record("old1"),
                make_record("old2", measurement=12.5),
                "garbage",
                {"productCode": "NO-ID"},
            ],
            "stages": [{"id": 1, "name": "Line A"}, {"id": "x"}],
            "stageEmployees": {"1": None, "2": "NV09"},
        }),
        encoding="utf-8",
    )

    hub = BroadcastHub(StateStore.from_file(data_file, writer))
    backups = list(data_file.parent.glob(f"{data_file.name}.*.bak"))
    assert len(backups) == 1
    assert len(json.loads(backups[0].read_text(encoding="utf-8"))["history"]) == 4

    a = fake_socket()
    await hub.connect(a)
    await hub.handle(a, _scan(make_record("new")))
    await asyncio.to_thread(writer.wait_idle)

    saved = json.loads(data_file.read_text(encoding="utf-8"))
    assert [r["id"] for r in saved["history"]] == ["new", "old1", "old2"]
    assert saved["history"][2]["measurement"] == 12.5
    assert [s["id"] for s in saved["stages"]] == [1]
    assert saved["stageEmployees"] == {"1": None, "2": "NV09"}
