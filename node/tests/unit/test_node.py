"""
File: node/tests/unit/test_node.py
Unit tests for the node facade: fault mode, commands and message admission.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from common.models import ConsensusMessage, MessageType, NodeState, Phase, RejectionReason, UNKNOWN
from node.config import ConfigurationError
from node.node import ConsensusNode


def message(sender, value=1, round_number=0, kind=MessageType.PROPOSE):
    return ConsensusMessage(kind=kind, sender=sender, round=round_number, value=value)

@pytest.fixture
def node():
    """Non-faulty node 0 of a 3-node cluster, without peers."""
    return ConsensusNode(0, 1, 3, collection_timeout=0.05)

@pytest.fixture
def faulty_node():
    return ConsensusNode(1, 1, 3, faulty=True)

def test_initial_state(node):
    assert node.get_state() == NodeState(killed=False, value=1, decided=False, round=0)
    assert node.get_status() == {"message": "live"}
    assert node.is_faulty() is False
    assert node.phase == Phase.IDLE

def test_get_state_returns_a_copy(node):
    snapshot = node.get_state()
    snapshot.value = 0
    assert node.get_state().value == 1

def test_faulty_node_state_is_null(faulty_node):
    assert faulty_node.get_state().model_dump() == {
        "killed": False, "value": None, "decided": None, "round": None
    }
    assert faulty_node.get_status() == {"message": "faulty"}
    assert faulty_node.is_faulty() is True
    assert faulty_node.phase == Phase.INERT

@pytest.mark.asyncio
async def test_faulty_node_never_starts(faulty_node):
    result = await faulty_node.begin_consensus()

    assert result.accepted is False
    assert result.reason == RejectionReason.FAULTY
    assert faulty_node.phase == Phase.INERT

@pytest.mark.asyncio
async def test_faulty_node_discards_messages(faulty_node):
    before = faulty_node.get_state()

    result = await faulty_node.deliver(message(0))

    assert result.accepted is False
    assert result.reason == RejectionReason.FAULTY
    assert faulty_node.get_state() == before

@pytest.mark.asyncio
async def test_faulty_node_can_be_stopped(faulty_node):
    await faulty_node.stop()

    state = faulty_node.get_state()
    assert state.killed is True
    assert (state.value, state.decided, state.round) == (None, None, None)

@pytest.mark.parametrize("args", [
    (0, 1, 0),      # empty cluster
    (3, 1, 3),      # id out of range
    (-1, 1, 3),
    (0, 2, 3),      # not a bit
    (0, True, 3),
])
def test_invalid_construction(args):
    with pytest.raises(ConfigurationError):
        ConsensusNode(*args)

def test_invalid_wait_mode():
    with pytest.raises(ConfigurationError):
        ConsensusNode(0, 1, 3, wait_mode="never")

@pytest.mark.asyncio
async def test_begin_consensus_twice_is_rejected(node):
    first = await node.begin_consensus()
    second = await node.begin_consensus()

    assert first.accepted is True
    assert second.accepted is False
    assert second.reason == RejectionReason.ALREADY_RUNNING

    await node.stop()
    assert await node.wait_until_finished(timeout=2.0) == Phase.KILLED

@pytest.mark.asyncio
async def test_begin_consensus_after_stop_is_rejected(node):
    await node.stop()

    result = await node.begin_consensus()

    assert result.accepted is False
    assert result.reason == RejectionReason.KILLED

@pytest.mark.asyncio
async def test_stop_is_idempotent(node):
    first = await node.stop()
    second = await node.stop()

    assert first.accepted and second.accepted
    assert node.get_state().killed is True

@pytest.mark.asyncio
async def test_stop_during_round_freezes_round(node):
    """Peers are silent, so the node keeps running rounds until stopped."""
    await node.begin_consensus()
    await asyncio.sleep(0.15)

    await node.stop()
    await node.wait_until_finished(timeout=2.0)
    frozen = node.get_state()
    await asyncio.sleep(0.15)

    assert frozen.killed is True
    assert node.get_state() == frozen
    assert node.phase == Phase.KILLED

@pytest.mark.asyncio
async def test_single_node_decides_its_initial_value():
    node = ConsensusNode(0, 0, 1, collection_timeout=1.0)

    await node.begin_consensus()
    phase = await node.wait_until_finished(timeout=2.0)

    assert phase == Phase.DECIDED
    assert node.get_state() == NodeState(killed=False, value=0, decided=True, round=0)

@pytest.mark.asyncio
async def test_begin_after_decision_keeps_state():
    node = ConsensusNode(0, 1, 1)
    await node.begin_consensus()
    await node.wait_until_finished(timeout=2.0)
    decided = node.get_state()

    result = await node.begin_consensus()

    assert result.accepted is True
    assert node.get_state() == decided

@pytest.mark.asyncio
async def test_deliver_records_message(node):
    result = await node.deliver(message(2, value=0))

    assert result.accepted is True
    stored = await node.store.messages_for(0, MessageType.PROPOSE)
    assert stored == [message(2, value=0)]

@pytest.mark.asyncio
async def test_deliver_deduplicates_by_sender(node):
    await node.deliver(message(1, value=0))
    result = await node.deliver(message(1, value=1))

    assert result.accepted is True
    stored = await node.store.messages_for(0, MessageType.PROPOSE)
    assert [m.value for m in stored] == [0]

@pytest.mark.asyncio
async def test_deliver_buffers_future_rounds(node):
    await node.deliver(message(1, round_number=4, kind=MessageType.VOTE, value=UNKNOWN))

    stored = await node.store.messages_for(4, MessageType.VOTE)
    assert len(stored) == 1
    assert node.get_state().round == 0

@pytest.mark.asyncio
async def test_deliver_drops_past_rounds(node):
    await node.store.clear_before(2)
    node.state.round = 2

    result = await node.deliver(message(1, round_number=1))

    assert result.accepted is True
    assert await node.store.messages_for(1, MessageType.PROPOSE) == []

@pytest.mark.asyncio
async def test_deliver_drops_unknown_sender(node):
    result = await node.deliver(message(7))

    assert result.accepted is True
    assert len(node.store) == 0

@pytest.mark.asyncio
async def test_deliver_to_killed_node_is_rejected(node):
    await node.stop()

    result = await node.deliver(message(1))

    assert result.accepted is False
    assert result.reason == RejectionReason.KILLED
    assert len(node.store) == 0

@pytest.mark.asyncio
async def test_broadcast_reaches_every_peer():
    transport = AsyncMock()
    transport.send = AsyncMock(return_value=True)
    node = ConsensusNode(0, 1, 3, transport=transport, collection_timeout=0.05)

    await node.begin_consensus()
    await asyncio.sleep(0.02)
    await node.stop()
    await node.wait_until_finished(timeout=2.0)

    peers = {call.args[0] for call in transport.send.call_args_list}
    assert peers == {1, 2}

@pytest.mark.asyncio
async def test_set_transport_after_construction(node):
    transport = AsyncMock()
    transport.send = AsyncMock(return_value=True)

    node.set_transport(transport)
    await node.begin_consensus()
    await asyncio.sleep(0.02)
    await node.stop()
    await node.wait_until_finished(timeout=2.0)

    assert node.transport is transport
    assert node.machine.transport is transport
    assert transport.send.await_count >= 2

def test_faulty_node_accepts_transport(faulty_node):
    transport = AsyncMock()
    faulty_node.set_transport(transport)
    assert faulty_node.transport is transport

@pytest.mark.parametrize("value", [True, False])
def test_message_rejects_boolean_value(value):
    with pytest.raises(ValidationError):
        message(1, value=value)
