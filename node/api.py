"""
File: node/api.py
API HTTP do nó de consenso com FastAPI.
"""
import time
from typing import Optional

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from common.logging import get_log_entries, get_uptime
from common.models import CommandResult, ConsensusMessage, HealthResponse, NodeState
from node.node import ConsensusNode

# Logging estruturado da camada HTTP
log = structlog.get_logger()


def create_app(node: ConsensusNode, component_name: Optional[str] = None) -> FastAPI:
    """
    Cria a aplicação FastAPI que expõe um nó de consenso.

    Args:
        node: Nó exposto pela API
        component_name: Nome usado no buffer de logs (padrão: node_<id>)

    Returns:
        FastAPI: Aplicação configurada
    """
    component = component_name or f"node_{node.node_id}"
    app = FastAPI(title=f"Ben-Or Node {node.node_id}")
    app.state.node = node

    def command_response(result: CommandResult) -> JSONResponse:
        status_code = 200 if result.accepted else 400
        return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

    # Middleware para logging de requisições
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log.debug("request handled",
                  node_id=node.node_id,
                  method=request.method,
                  path=request.url.path,
                  status_code=response.status_code)
        return response

    @app.get("/status")
    async def status_endpoint():
        """
        Status do nó: 200 "live" ou 500 "faulty".
        """
        status = node.get_status()
        return JSONResponse(status_code=500 if node.is_faulty() else 200, content=status)

    @app.get("/getState", response_model=NodeState)
    async def get_state_endpoint():
        """
        Endpoint para obter o estado de consenso do nó.
        """
        return node.get_state()

    @app.get("/start")
    async def start_endpoint():
        result = await node.begin_consensus()
        if result.accepted:
            log.info("consensus start requested", node_id=node.node_id)
        else:
            log.info("consensus start rejected", node_id=node.node_id, reason=result.reason.value)
        return command_response(result)

    @app.get("/stop")
    async def stop_endpoint():
        result = await node.stop()
        log.info("node stop requested", node_id=node.node_id)
        return command_response(result)

    @app.post("/message")
    async def message_endpoint(message: ConsensusMessage):
        """
        Endpoint para receber mensagens PROPOSE e VOTE dos pares.
        """
        result = await node.deliver(message)
        return command_response(result)

    @app.get("/health", response_model=HealthResponse)
    async def health_endpoint():
        return {"status": "healthy", "timestamp": time.time()}

    @app.get("/logs")
    async def logs_endpoint(limit: int = 100, level: Optional[str] = None):
        """
        Endpoint para obter os logs recentes do nó.
        """
        return {
            "component": component,
            "uptime": get_uptime(),
            "entries": get_log_entries(component, level=level, limit=limit)
        }

    @app.get("/metrics")
    async def metrics_endpoint():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
