"""
Configuração global para testes.
Contém fixtures compartilhadas pelos testes de integração do cluster.
"""
import logging

import httpx
import pytest

# Configurar logging para testes
logging.basicConfig(level=logging.INFO)


class RoutingASGITransport(httpx.AsyncBaseTransport):
    """
    Transporte httpx que encaminha cada requisição para a aplicação ASGI
    registrada na porta de destino, sem abrir sockets.
    """

    def __init__(self):
        self.apps = {}

    def mount(self, port: int, app) -> None:
        self.apps[port] = httpx.ASGITransport(app=app)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        app = self.apps.get(request.url.port)
        if app is None:
            raise httpx.ConnectError(f"nenhum nó escutando em {request.url}", request=request)
        return await app.handle_async_request(request)


@pytest.fixture
def routing_transport():
    return RoutingASGITransport()

@pytest.fixture
def fast_options():
    """Opções de nó com esperas curtas para manter os testes rápidos."""
    return {"collection_timeout": 0.05, "wait_mode": "quorum"}
