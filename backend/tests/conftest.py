from __future__ import annotations

from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from core.config import Settings
from core.hub import BroadcastHub
from core.persistence import StateWriter
from core.state_store import StateStore
from main import create_app


class FakeSocket:
    """Stands in for a connected station in hub unit tests."""

    def __init__(self, fail: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


@pytest.fixture
def fake_socket() -> Callable[..., FakeSocket]:
    return FakeSocket


@pytest.fixture
def make_record() -> Callable[..., Dict[str, Any]]:
    def _make(rid: str, stt: int = 1, productCode: str = "ABC123", **extra: Any) -> Dict[str, Any]:
        record = {
            "id": rid,
            "stt": stt,
            "productCode": productCode,
            "model": "IMEI35",
            "modelName": "X1",
            "employeeId": "NV01",
            "timestamp": "2026-03-01T01:00:00.000Z",
            "status": "valid",
            "stage": 1,
            "measurement": "OK",
        }
        record.update(extra)
        return record

    return _make


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "manufacturing_data.json"


@pytest.fixture
def writer(data_file):
    w = StateWriter(data_file)
    yield w
    w.close()


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub(StateStore())


@pytest.fixture
def app(data_file):
    return create_app(Settings(DATA_FILE=str(data_file)))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
