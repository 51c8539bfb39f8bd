"""Tests for the snapshot hub, the WebSocket endpoint and the periodic push loop."""

import asyncio
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import WebSocketDisconnect

from fundarb.dashboard.routes.ws import SnapshotHub, websocket_endpoint
from fundarb.dashboard.update_loop import dashboard_update_loop
from fundarb.engine import ArbitrageEngine
from fundarb.execution.gateway import ExecutionGateway
from fundarb.market_data.aggregator import RateAggregator
from fundarb.market_data.opportunity_engine import OpportunityEngine


def _ws(**send_kwargs) -> MagicMock:
    ws = MagicMock()
    ws.send_json = AsyncMock(**send_kwargs)
    return ws


@pytest.mark.asyncio
async def test_broadcast_drops_failed_connections() -> None:
    hub = SnapshotHub()
    healthy = _ws()
    broken = _ws(side_effect=RuntimeError("closed"))
    hub.connections = [healthy, broken]

    await hub.broadcast({"type": "snapshot"})

    healthy.send_json.assert_awaited_once_with({"type": "snapshot"})
    assert hub.connections == [healthy]


@pytest.mark.asyncio
async def test_update_loop_pushes_snapshot_to_clients() -> None:
    hub = SnapshotHub()
    client = _ws()
    hub.connections = [client]
    engine = ArbitrageEngine(
        RateAggregator(OpportunityEngine(), Decimal("0.005")), ExecutionGateway()
    )
    app = SimpleNamespace(state=SimpleNamespace(hub=hub, engine=engine, update_interval=0.01))

    task = asyncio.create_task(dashboard_update_loop(app))
    for _ in range(100):
        if client.send_json.await_count:
            break
        await asyncio.sleep(0.01)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    payload = client.send_json.await_args.args[0]
    assert payload["type"] == "snapshot"
    assert payload["rates"] == {}
    assert payload["status"]["threshold"] == "0.005"


@pytest.mark.asyncio
async def test_client_gone_before_first_snapshot_is_dropped() -> None:
    hub = SnapshotHub()
    engine = ArbitrageEngine(
        RateAggregator(OpportunityEngine(), Decimal("0.005")), ExecutionGateway()
    )
    ws = _ws(side_effect=WebSocketDisconnect(code=1001))
    ws.accept = AsyncMock()
    ws.receive_text = AsyncMock()
    ws.app = SimpleNamespace(state=SimpleNamespace(hub=hub, engine=engine))

    await websocket_endpoint(ws)

    assert hub.connections == []
    ws.receive_text.assert_not_awaited()
