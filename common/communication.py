"""
Módulo de comunicação compartilhado entre os nós.
Fornece o cliente HTTP usado para entregar mensagens aos pares.
"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("communication")

class HttpClient:
    """
    Cliente HTTP para comunicação entre nós.

    Características:
    1. Suporte a timeouts configuráveis
    2. Gerenciamento de conexões keep-alive
    3. Serialização/desserialização automática de JSON
    """

    def __init__(self, timeout: float = 2.0, max_connections: int = 100,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Inicializa o cliente HTTP.

        Args:
            timeout: Timeout padrão para requisições em segundos
            max_connections: Número máximo de conexões concorrentes
            transport: Transporte httpx alternativo (ex.: ASGI em testes)
        """
        self.timeout = timeout
        self.limits = httpx.Limits(max_connections=max_connections)
        self.transport = transport
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """
        Obtém o cliente HTTP assíncrono, criando-o se necessário.

        Returns:
            httpx.AsyncClient: Cliente HTTP assíncrono
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=self.limits,
                follow_redirects=True,
                transport=self.transport
            )
        return self._client

    async def close(self):
        """Fecha o cliente HTTP."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def post(self, url: str, json: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Faz uma requisição POST.

        Args:
            url: URL para requisição
            json: Dados a serem enviados como JSON
            headers: Cabeçalhos HTTP
            timeout: Timeout para esta requisição específica (sobrescreve o padrão)

        Returns:
            Dict[str, Any]: Resposta JSON convertida para dicionário

        Raises:
            httpx.HTTPError: Se ocorrer erro na requisição
        """
        response = await self.client.post(
            url,
            json=json,
            headers=headers,
            timeout=timeout or self.timeout
        )
        response.raise_for_status()
        return response.json() if response.content else {}
