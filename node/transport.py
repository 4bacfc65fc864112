"""
File: node/transport.py
Transportes ponto a ponto usados para entregar mensagens aos pares.

HttpTransport envia via POST /message para o nó de destino; LocalTransport
entrega diretamente a nós do mesmo processo (simulação e testes). Em ambos,
uma falha de entrega retorna False e nunca é propagada.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from common.communication import HttpClient
from common.models import ConsensusMessage

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Canal ponto a ponto endereçado pelo id do nó."""

    @abstractmethod
    async def send(self, peer_id: int, message: ConsensusMessage) -> bool:
        """Entrega a mensagem ao par; True se o par a aceitou."""

    async def close(self) -> None:
        """Libera os recursos do transporte."""


class HttpTransport(Transport):
    """
    Transporte HTTP entre nós.

    Cada envio é uma única tentativa: mensagens perdidas são naturalmente
    reenviadas na próxima rodada.
    """

    def __init__(self, peer_urls: Dict[int, str], client: Optional[HttpClient] = None,
                 timeout: float = 2.0):
        """
        Args:
            peer_urls: URL base de cada nó, por id
            client: Cliente HTTP compartilhado (criado se omitido)
            timeout: Timeout por envio em segundos
        """
        self.peer_urls = dict(peer_urls)
        self.client = client or HttpClient(timeout=timeout)
        self.timeout = timeout

    async def send(self, peer_id: int, message: ConsensusMessage) -> bool:
        url = self.peer_urls.get(peer_id)
        if url is None:
            logger.warning(f"Nó {peer_id} desconhecido, mensagem descartada")
            return False

        try:
            await self.client.post(f"{url}/message", json=message.model_dump(mode="json"),
                                   timeout=self.timeout)
            return True
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nó {peer_id} recusou {message.kind.value} da rodada {message.round}: "
                           f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Falha ao enviar mensagem para o nó {peer_id}: {type(e).__name__}: {e}")
        return False

    async def close(self) -> None:
        await self.client.close()


class LocalTransport(Transport):
    """Entrega direta a nós do mesmo processo, registrados por id."""

    def __init__(self, registry: Optional[Dict[int, Any]] = None):
        self.registry: Dict[int, Any] = registry if registry is not None else {}

    def register(self, node) -> None:
        self.registry[node.node_id] = node

    async def send(self, peer_id: int, message: ConsensusMessage) -> bool:
        node = self.registry.get(peer_id)
        if node is None:
            logger.warning(f"Nó {peer_id} não registrado no transporte local")
            return False
        result = await node.deliver(message)
        return result.accepted
