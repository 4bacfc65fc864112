"""
File: node/message_store.py
Armazenamento das mensagens recebidas por rodada e tipo, deduplicadas por remetente.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Callable, Dict, List

from common.models import ConsensusMessage, MessageType

logger = logging.getLogger(__name__)

Predicate = Callable[[List[ConsensusMessage]], bool]


class MessageStore:
    """
    Mensagens de consenso de um nó.

    Estrutura: rodada -> tipo -> remetente -> mensagem. A primeira mensagem
    de um remetente para (rodada, tipo) prevalece. Rodadas abaixo do piso
    (liberadas por clear_before) não aceitam novas mensagens.
    """

    def __init__(self):
        self._messages: Dict[int, Dict[MessageType, Dict[int, ConsensusMessage]]] = defaultdict(
            lambda: defaultdict(dict)
        )
        self._floor = 0

        # Lock único para leituras e escritas; a condição notifica quem espera
        self.lock = asyncio.Lock()
        self._changed = asyncio.Condition(self.lock)

    @property
    def floor(self) -> int:
        """Menor rodada ainda aceita."""
        return self._floor

    async def record(self, message: ConsensusMessage) -> bool:
        """
        Registra uma mensagem.

        Returns:
            bool: False se a rodada já foi liberada ou se o remetente já
            enviou uma mensagem desse tipo nessa rodada
        """
        async with self._changed:
            if message.round < self._floor:
                return False

            bucket = self._messages[message.round][message.kind]
            if message.sender in bucket:
                return False

            bucket[message.sender] = message
            self._changed.notify_all()
            return True

    async def messages_for(self, round_number: int, kind: MessageType) -> List[ConsensusMessage]:
        """Cópia das mensagens de (rodada, tipo), ordenadas por remetente."""
        async with self.lock:
            return self._snapshot(round_number, kind)

    async def clear_before(self, round_number: int) -> None:
        """Libera as rodadas anteriores a round_number e eleva o piso."""
        async with self.lock:
            for stale in [r for r in self._messages if r < round_number]:
                del self._messages[stale]
            self._floor = max(self._floor, round_number)

    async def wait_for(self, round_number: int, kind: MessageType, predicate: Predicate,
                       timeout: float) -> List[ConsensusMessage]:
        """
        Aguarda até que predicate(mensagens) seja verdadeiro ou o timeout expire.

        Args:
            round_number: Rodada esperada
            kind: Tipo de mensagem esperado
            predicate: Condição avaliada sobre a cópia das mensagens
            timeout: Tempo máximo de espera em segundos

        Returns:
            List[ConsensusMessage]: Mensagens disponíveis ao final da espera
        """
        async with self._changed:
            try:
                await asyncio.wait_for(
                    self._changed.wait_for(lambda: predicate(self._snapshot(round_number, kind))),
                    timeout
                )
            except asyncio.TimeoutError:
                logger.debug(f"Timeout aguardando mensagens {kind.value} da rodada {round_number}")
            return self._snapshot(round_number, kind)

    async def wake(self) -> None:
        """Acorda todas as esperas para que reavaliem suas condições."""
        async with self._changed:
            self._changed.notify_all()

    def _snapshot(self, round_number: int, kind: MessageType) -> List[ConsensusMessage]:
        rounds = self._messages.get(round_number)
        if not rounds or kind not in rounds:
            return []
        bucket = rounds[kind]
        return [bucket[sender] for sender in sorted(bucket)]

    def __len__(self) -> int:
        return sum(len(bucket) for kinds in self._messages.values() for bucket in kinds.values())
