"""
File: node/node.py
Fachada do nó de consenso: modo defeituoso, comandos start/stop e admissão de mensagens.
"""
import asyncio
import logging
import random
from typing import Dict, Optional

from common.metrics import node_metrics
from common.models import (
    CommandResult, ConsensusMessage, NodeState, Phase, RejectionReason
)
from node.config import ConfigurationError
from node.consensus import ConsensusStateMachine
from node.message_store import MessageStore
from node.transport import Transport

logger = logging.getLogger(__name__)

class ConsensusNode:
    """
    Nó participante do consenso binário aleatorizado.
    Recebe mensagens dos pares, controla o laço de consenso e expõe o estado.
    """

    def __init__(self, node_id: int, initial_value: int, total_nodes: int, faulty: bool = False,
                 transport: Optional[Transport] = None, collection_timeout: float = 1.0,
                 wait_mode: str = "quorum", max_rounds: Optional[int] = None,
                 rng: Optional[random.Random] = None):
        """
        Inicializa o nó.

        Args:
            node_id: ID do nó, em [0, total_nodes)
            initial_value: Bit inicial (0 ou 1)
            total_nodes: Número total de nós do cluster
            faulty: Se True, o nó nunca participa do consenso
            transport: Transporte para os pares (pode ser definido depois)
            collection_timeout: Tempo máximo de coleta por fase
            wait_mode: "quorum" ou "fixed"
            max_rounds: Limite opcional de rodadas com decisão forçada
            rng: Fonte de aleatoriedade injetável

        Raises:
            ConfigurationError: Se algum parâmetro for inválido
        """
        if total_nodes < 1:
            raise ConfigurationError(f"total_nodes deve ser >= 1, recebido {total_nodes}")
        if not 0 <= node_id < total_nodes:
            raise ConfigurationError(f"node_id {node_id} fora do intervalo [0, {total_nodes})")
        if initial_value not in (0, 1) or isinstance(initial_value, bool):
            raise ConfigurationError(f"initial_value deve ser 0 ou 1, recebido {initial_value!r}")

        self.node_id = node_id
        self.total_nodes = total_nodes
        self.faulty = faulty
        self.transport = transport

        self.log = logging.LoggerAdapter(logger, {"node_id": node_id})
        self._labels = {"node_id": str(node_id)}
        self._task: Optional[asyncio.Task] = None

        if faulty:
            self.state = NodeState(killed=False)
            self.store = None
            self.machine = None
        else:
            self.state = NodeState(killed=False, value=initial_value, decided=False, round=0)
            self.store = MessageStore()
            self.machine = ConsensusStateMachine(
                node_id, total_nodes, self.state, self.store,
                transport=transport,
                collection_timeout=collection_timeout,
                wait_mode=wait_mode,
                max_rounds=max_rounds,
                rng=rng
            )

        self.log.debug(f"Nó {node_id} inicializado (valor={initial_value}, total={total_nodes}, faulty={faulty})")

    @property
    def phase(self) -> Phase:
        if self.machine is None:
            return Phase.INERT
        return self.machine.phase

    def set_transport(self, transport: Transport) -> None:
        self.transport = transport
        if self.machine is not None:
            self.machine.transport = transport

    def is_faulty(self) -> bool:
        return self.faulty

    def get_state(self) -> NodeState:
        """Cópia do estado atual do nó."""
        return self.state.model_copy()

    def get_status(self) -> Dict[str, str]:
        """Status de saúde do nó: "faulty" para nós defeituosos, "live" caso contrário."""
        return {"message": "faulty" if self.faulty else "live"}

    async def begin_consensus(self) -> CommandResult:
        """
        Inicia o laço de consenso em segundo plano.

        Returns:
            CommandResult: Rejeitado se o nó for defeituoso, estiver parado
            ou se o consenso já estiver em execução
        """
        if self.faulty:
            return self._reject(RejectionReason.FAULTY)
        if self.state.killed:
            return self._reject(RejectionReason.KILLED)
        if self.machine.phase == Phase.RUNNING:
            return self._reject(RejectionReason.ALREADY_RUNNING)
        if self.state.decided:
            return CommandResult(accepted=True, message="Consensus already decided")

        # A fase muda antes do agendamento para que chamadas concorrentes sejam rejeitadas
        self.machine.phase = Phase.RUNNING
        self._task = asyncio.create_task(self.machine.run(), name=f"consensus-node-{self.node_id}")
        return CommandResult(accepted=True, message="Consensus started")

    async def stop(self) -> CommandResult:
        """Para o nó definitivamente. Idempotente."""
        if not self.state.killed:
            self.state.killed = True
            self.log.info(f"Nó {self.node_id} parado")
            if self.store is not None:
                await self.store.wake()
        return CommandResult(accepted=True, message="Node stopped")

    async def deliver(self, message: ConsensusMessage) -> CommandResult:
        """
        Recebe uma mensagem de um par.

        Mensagens de remetentes inválidos, de rodadas passadas, duplicadas ou
        que chegam após a decisão são descartadas silenciosamente.
        """
        if self.faulty:
            return self._reject(RejectionReason.FAULTY)
        if self.state.killed:
            return self._reject(RejectionReason.KILLED)

        reason = None
        if not 0 <= message.sender < self.total_nodes:
            reason = "unknown_sender"
        elif self.state.decided:
            reason = "decided"
        elif not await self.store.record(message):
            reason = "stale_round" if message.round < self.store.floor else "duplicate"

        if reason is None:
            node_metrics["messages_received"].labels(kind=message.kind.value, **self._labels).inc()
        else:
            node_metrics["messages_dropped"].labels(reason=reason, **self._labels).inc()
            self.log.debug(f"Mensagem {message.kind.value} do nó {message.sender} "
                           f"(rodada {message.round}) descartada: {reason}")
        return CommandResult(accepted=True, message="Message received")

    async def wait_until_finished(self, timeout: Optional[float] = None) -> Phase:
        """Aguarda o término do laço de consenso, se houver um em execução."""
        if self._task is not None:
            await asyncio.wait_for(asyncio.shield(self._task), timeout)
        return self.phase

    def _reject(self, reason: RejectionReason) -> CommandResult:
        messages = {
            RejectionReason.FAULTY: "Node is faulty",
            RejectionReason.KILLED: "Node is killed",
            RejectionReason.ALREADY_RUNNING: "Consensus already running",
        }
        return CommandResult(accepted=False, message=messages[reason], reason=reason)
