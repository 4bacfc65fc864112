"""
File: node/network.py
Rede de nós no mesmo processo, ligados por LocalTransport.
Usada pela simulação e pelos testes de integração.
"""
import asyncio
import logging
import random
from typing import Any, List, Optional, Sequence

from common.models import CommandResult, NodeState, Phase
from node.node import ConsensusNode
from node.transport import LocalTransport

logger = logging.getLogger(__name__)


def launch_network(initial_values: Sequence[int], faulty: Optional[Sequence[bool]] = None,
                   seed: Optional[int] = None, **node_options: Any) -> List[ConsensusNode]:
    """
    Cria um nó por valor inicial, todos conectados pelo mesmo LocalTransport.

    Args:
        initial_values: Bit inicial de cada nó; o índice é o id do nó
        faulty: Flags de falha por nó (padrão: nenhum defeituoso)
        seed: Semente base; o nó i usa random.Random(seed + i)
        node_options: Repassados ao construtor de ConsensusNode

    Returns:
        List[ConsensusNode]: Nós indexados por id
    """
    total = len(initial_values)
    faulty = list(faulty) if faulty is not None else [False] * total
    if len(faulty) != total:
        raise ValueError(f"faulty tem {len(faulty)} entradas para {total} nós")

    nodes = []
    for node_id, (value, is_faulty) in enumerate(zip(initial_values, faulty)):
        rng = random.Random(seed + node_id) if seed is not None else None
        nodes.append(ConsensusNode(node_id, value, total, faulty=is_faulty, rng=rng, **node_options))

    transport = LocalTransport()
    for node in nodes:
        transport.register(node)
        node.set_transport(transport)

    logger.info(f"Rede lançada com {total} nós ({sum(faulty)} defeituosos)")
    return nodes

async def start_consensus(nodes: Sequence[ConsensusNode]) -> List[CommandResult]:
    """Inicia o consenso em todos os nós."""
    return list(await asyncio.gather(*(node.begin_consensus() for node in nodes)))

async def stop_consensus(nodes: Sequence[ConsensusNode]) -> None:
    """Para todos os nós e aguarda o fim dos laços em execução."""
    await asyncio.gather(*(node.stop() for node in nodes))
    await asyncio.gather(*(node.wait_until_finished() for node in nodes))

async def wait_for_decisions(nodes: Sequence[ConsensusNode], timeout: float) -> List[NodeState]:
    """
    Aguarda até que todos os nós ativos terminem o laço ou o timeout expire.

    Returns:
        List[NodeState]: Estado final de cada nó
    """
    running = [node for node in nodes if node.phase == Phase.RUNNING]
    if running:
        _, pending = await asyncio.wait(
            [asyncio.ensure_future(node.wait_until_finished()) for node in running],
            timeout=timeout
        )
        for future in pending:
            future.cancel()
        if pending:
            logger.warning(f"{len(pending)} nós não terminaram em {timeout}s")
    return [node.get_state() for node in nodes]
