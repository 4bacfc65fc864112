"""
File: node/consensus.py
Máquina de estados do consenso binário aleatorizado (Ben-Or) de um nó.

Cada rodada tem duas fases:
1. PROPOSE: difunde o valor atual e coleta as propostas da rodada.
   Se um bit tiver maioria ele é adotado; caso contrário o bit é sorteado.
2. VOTE: difunde o bit adotado e coleta os votos da rodada.
   Se um bit tiver maioria o nó decide; caso contrário o valor vira "?"
   e a próxima rodada começa.
"""
import asyncio
import logging
import random
import time
from typing import List, Optional

from common.logging import IMPORTANT
from common.metrics import node_metrics
from common.models import (
    ConsensusMessage, DECISIVE_VALUES, MessageType, NodeState, Phase, UNKNOWN, Value
)
from node.config import ConfigurationError, WAIT_MODES
from node.message_store import MessageStore
from node.quorum import QuorumEvaluator, value_counts
from node.transport import Transport

logger = logging.getLogger(__name__)


class ConsensusStateMachine:
    """
    Laço de rodadas de um nó não defeituoso.

    O estado (NodeState) pertence ao nó; esta classe é a única que altera
    value, decided e round. A flag killed é alterada apenas pelo stop do nó
    e consultada aqui antes de cada difusão e de cada resolução.
    """

    def __init__(self, node_id: int, total_nodes: int, state: NodeState, store: MessageStore,
                 transport: Optional[Transport] = None, collection_timeout: float = 1.0,
                 wait_mode: str = "quorum", max_rounds: Optional[int] = None,
                 rng: Optional[random.Random] = None):
        """
        Inicializa a máquina de estados.

        Args:
            node_id: ID do nó
            total_nodes: Número total de nós do cluster
            state: Estado mutável do nó
            store: Armazenamento de mensagens do nó
            transport: Transporte usado para difundir mensagens aos pares
            collection_timeout: Tempo máximo de coleta por fase, em segundos
            wait_mode: "quorum" (espera por eventos) ou "fixed" (espera o timeout inteiro)
            max_rounds: Se definido, força uma decisão ao atingir esse número de rodadas
            rng: Fonte de aleatoriedade (precisa de randint)
        """
        if collection_timeout < 0:
            raise ConfigurationError(f"collection_timeout não pode ser negativo: {collection_timeout}")
        if wait_mode not in WAIT_MODES:
            raise ConfigurationError(f"wait_mode inválido: {wait_mode!r} (use {', '.join(WAIT_MODES)})")
        if max_rounds is not None and max_rounds < 1:
            raise ConfigurationError(f"max_rounds deve ser >= 1, recebido {max_rounds}")

        self.node_id = node_id
        self.total_nodes = total_nodes
        self.state = state
        self.store = store
        self.transport = transport
        self.collection_timeout = collection_timeout
        self.wait_mode = wait_mode
        self.max_rounds = max_rounds
        self.rng = rng or random.Random()
        self.quorum = QuorumEvaluator(total_nodes)
        self.phase = Phase.IDLE

        self.log = logging.LoggerAdapter(logger, {"node_id": node_id})
        self._labels = {"node_id": str(node_id)}

    @property
    def peers(self) -> List[int]:
        return [i for i in range(self.total_nodes) if i != self.node_id]

    @property
    def killed(self) -> bool:
        return self.state.killed

    async def run(self) -> Phase:
        """
        Executa rodadas até decidir ou até o nó ser parado.

        Returns:
            Phase: DECIDED, KILLED ou IDLE (após erro inesperado)
        """
        self.phase = Phase.RUNNING
        self.log.info(f"Consenso iniciado: valor={self.state.value}, rodada={self.state.round}, "
                      f"maioria={self.quorum.threshold}/{self.total_nodes}")
        try:
            while not self.state.decided:
                if not await self._run_round():
                    break
        except Exception:
            self.log.exception("Erro inesperado no laço de consenso")
            self.phase = Phase.IDLE
            return self.phase

        if self.state.decided:
            self.phase = Phase.DECIDED
        elif self.killed:
            self.phase = Phase.KILLED
            self.log.info(f"Consenso interrompido na rodada {self.state.round}")
        return self.phase

    async def _run_round(self) -> bool:
        """
        Executa uma rodada completa.

        Returns:
            bool: False se o laço deve terminar (nó parado ou decidido)
        """
        round_number = self.state.round

        # Fase 1: propostas
        if self.killed:
            return False
        await self.broadcast(MessageType.PROPOSE, self.state.value)
        proposals = await self.collect(round_number, MessageType.PROPOSE)

        if self.killed:
            return False
        self.state.value = self._resolve_proposals(round_number, proposals)

        # Fase 2: votos
        if self.killed:
            return False
        await self.broadcast(MessageType.VOTE, self.state.value)
        votes = await self.collect(round_number, MessageType.VOTE)

        if self.killed:
            return False
        decision = self.quorum.evaluate(votes, require_decisive=True)
        if decision is not None:
            self._decide(decision, round_number, votes)
            return False

        self.log.debug(f"Rodada {round_number} sem decisão: votos={value_counts(votes)}")
        self.state.value = UNKNOWN
        self.state.round = round_number + 1
        await self.store.clear_before(self.state.round)
        node_metrics["rounds_total"].labels(**self._labels).inc()
        node_metrics["current_round"].labels(**self._labels).set(self.state.round)

        if self.max_rounds is not None and self.state.round >= self.max_rounds:
            self._force_decision()
            return False
        return True

    def _resolve_proposals(self, round_number: int, proposals: List[ConsensusMessage]) -> Value:
        majority = self.quorum.evaluate(proposals, require_decisive=False)
        if majority in DECISIVE_VALUES:
            self.log.debug(f"Rodada {round_number}: maioria de propostas para {majority}")
            return majority

        choice = self.rng.randint(0, 1)
        node_metrics["random_choices"].labels(**self._labels).inc()
        self.log.debug(f"Rodada {round_number}: sem maioria em {value_counts(proposals)}, sorteado {choice}")
        return choice

    def _decide(self, value: Value, round_number: int, votes: List[ConsensusMessage]) -> None:
        self.state.value = value
        self.state.decided = True
        node_metrics["decisions_total"].labels(forced="false", **self._labels).inc()
        self.log.log(IMPORTANT, f"Decidido {value} na rodada {round_number} (votos={value_counts(votes)})")

    def _force_decision(self) -> None:
        value = self.state.value if self.state.value in DECISIVE_VALUES else 1
        self.state.value = value
        self.state.decided = True
        node_metrics["decisions_total"].labels(forced="true", **self._labels).inc()
        self.log.warning(f"Limite de {self.max_rounds} rodadas atingido: decisão forçada em {value}, "
                         f"validade não garantida")

    async def broadcast(self, kind: MessageType, value: Value) -> None:
        """
        Difunde uma mensagem para todos os pares e a registra localmente.

        Falhas de entrega a um par não afetam os demais nem a rodada.
        """
        message = ConsensusMessage(kind=kind, sender=self.node_id, round=self.state.round, value=value)
        if await self.store.record(message):
            node_metrics["messages_received"].labels(kind=kind.value, **self._labels).inc()

        if self.transport is None or not self.peers:
            return

        results = await asyncio.gather(
            *(self.transport.send(peer, message) for peer in self.peers),
            return_exceptions=True
        )

        failed = [peer for peer, result in zip(self.peers, results) if result is not True]
        for peer, result in zip(self.peers, results):
            if isinstance(result, Exception):
                self.log.warning(f"Falha ao enviar {kind.value} para o nó {peer}: {result}")
        if failed:
            node_metrics["broadcast_failures"].labels(**self._labels).inc(len(failed))
            self.log.debug(f"{kind.value} da rodada {message.round} não entregue aos nós {failed}")

    async def collect(self, round_number: int, kind: MessageType) -> List[ConsensusMessage]:
        """
        Aguarda as mensagens de (rodada, tipo) e retorna as disponíveis.

        No modo "quorum" a espera termina assim que todos os nós responderem,
        um bit atingir a maioria ou o nó for parado. No modo "fixed" o nó
        espera sempre o timeout inteiro.
        """
        started = time.monotonic()

        if self.wait_mode == "fixed":
            await asyncio.sleep(self.collection_timeout)
            messages = await self.store.messages_for(round_number, kind)
        else:
            messages = await self.store.wait_for(
                round_number, kind, self._collection_complete, self.collection_timeout
            )

        node_metrics["phase_duration"].labels(phase=kind.value, **self._labels).observe(
            time.monotonic() - started
        )
        return messages

    def _collection_complete(self, messages: List[ConsensusMessage]) -> bool:
        return (
            self.killed
            or len(messages) >= self.total_nodes
            or self.quorum.has_decisive_majority(messages)
        )
