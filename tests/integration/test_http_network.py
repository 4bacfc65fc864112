"""
Testes de integração do cluster sobre HTTP.
Cada nó expõe sua API FastAPI e envia mensagens aos pares via HttpTransport,
com as requisições roteadas por porta para as aplicações ASGI em memória.
"""
import random

import httpx
import pytest
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_delay, wait_fixed

from common.communication import HttpClient
from node.api import create_app
from node.config import BASE_NODE_PORT, node_port
from node.node import ConsensusNode
from node.transport import HttpTransport


def node_url(node_id):
    return f"http://localhost:{node_port(node_id, BASE_NODE_PORT)}"

def build_cluster(routing_transport, initial_values, faulty=None, seed=0):
    """Cria os nós, monta suas APIs e liga seus transportes HTTP."""
    total = len(initial_values)
    faulty = faulty or [False] * total
    urls = {i: node_url(i) for i in range(total)}
    nodes = []
    for i, value in enumerate(initial_values):
        transport = HttpTransport({p: u for p, u in urls.items() if p != i},
                                  client=HttpClient(transport=routing_transport))
        node = ConsensusNode(i, value, total, faulty=faulty[i], transport=transport,
                             collection_timeout=0.05, rng=random.Random(seed + i))
        routing_transport.mount(node_port(i, BASE_NODE_PORT), create_app(node))
        nodes.append(node)
    return nodes

async def teardown(nodes):
    for node in nodes:
        await node.stop()
        await node.wait_until_finished(timeout=2.0)
        await node.transport.close()

async def wait_all_decided(client, node_ids, timeout=10.0):
    """Consulta /getState até que todos os nós indicados tenham decidido."""
    async for attempt in AsyncRetrying(stop=stop_after_delay(timeout), wait=wait_fixed(0.05),
                                       retry=retry_if_exception_type(AssertionError), reraise=True):
        with attempt:
            states = {}
            for i in node_ids:
                response = await client.get(f"{node_url(i)}/getState")
                assert response.status_code == 200
                states[i] = response.json()
                assert states[i]["decided"] is True
    return states


@pytest.mark.asyncio
async def test_cluster_decides_over_http(routing_transport):
    nodes = build_cluster(routing_transport, [1, 0, 1])

    async with httpx.AsyncClient(transport=routing_transport) as client:
        for i in range(3):
            response = await client.get(f"{node_url(i)}/start")
            assert response.status_code == 200

        states = await wait_all_decided(client, range(3))

    assert len({state["value"] for state in states.values()}) == 1
    assert all(state["killed"] is False for state in states.values())
    await teardown(nodes)

@pytest.mark.asyncio
async def test_faulty_node_over_http(routing_transport):
    """O nó defeituoso responde 500 em /status; os demais decidem mesmo assim."""
    nodes = build_cluster(routing_transport, [0, 0, 1, 0, 1],
                          faulty=[False, False, False, True, False])

    async with httpx.AsyncClient(transport=routing_transport) as client:
        status = await client.get(f"{node_url(3)}/status")
        assert status.status_code == 500
        assert status.json() == {"message": "faulty"}

        start = await client.get(f"{node_url(3)}/start")
        assert start.status_code == 400

        for i in (0, 1, 2, 4):
            assert (await client.get(f"{node_url(i)}/start")).status_code == 200

        states = await wait_all_decided(client, (0, 1, 2, 4))
        faulty_state = (await client.get(f"{node_url(3)}/getState")).json()

    assert len({state["value"] for state in states.values()}) == 1
    assert faulty_state == {"killed": False, "value": None, "decided": None, "round": None}
    await teardown(nodes)

@pytest.mark.asyncio
async def test_stop_over_http(routing_transport):
    nodes = build_cluster(routing_transport, [1, 0, 1], faulty=[False, True, True])

    async with httpx.AsyncClient(transport=routing_transport) as client:
        await client.get(f"{node_url(0)}/start")
        response = await client.get(f"{node_url(0)}/stop")
        assert response.status_code == 200
        await nodes[0].wait_until_finished(timeout=2.0)

        state = (await client.get(f"{node_url(0)}/getState")).json()
        message = await client.post(f"{node_url(0)}/message",
                                    json={"kind": "PROPOSE", "sender": 1, "round": 0, "value": 1})

    assert state["killed"] is True
    assert state["decided"] is False
    assert message.status_code == 400
    await teardown(nodes)
