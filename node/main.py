"""
File: node/main.py
Ponto de entrada do serviço: lê a configuração, cria o nó e inicia o servidor uvicorn.
"""
import argparse
import asyncio
import logging
import random
from typing import Optional

import uvicorn

from common.logging import setup_logging
from common.utils import get_debug_mode
from node.api import create_app
from node.config import ConfigurationError, load_config, node_port, peer_urls
from node.node import ConsensusNode
from node.transport import HttpTransport

# Configuração do logger
logger = logging.getLogger(__name__)

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Node - Ben-Or Randomized Binary Consensus')
    parser.add_argument('--config', type=str, help='YAML configuration file')
    parser.add_argument('--id', type=int, help='Node ID in [0, total-nodes)')
    parser.add_argument('--initial-value', type=int, choices=[0, 1], help='Initial bit of this node')
    parser.add_argument('--total-nodes', type=int, help='Number of nodes in the cluster')
    parser.add_argument('--faulty', action='store_true', default=None, help='Start as a faulty node')
    parser.add_argument('--host', type=str, help='Interface to bind the HTTP server to')
    parser.add_argument('--port', type=int, help='Port to run the server on (default: base port + id)')
    parser.add_argument('--peers', type=str, help='Comma-separated list of node URLs, indexed by node ID')
    parser.add_argument('--collection-timeout', type=float, help='Seconds to collect messages per phase')
    parser.add_argument('--wait-mode', choices=['quorum', 'fixed'], help='Message collection policy')
    parser.add_argument('--max-rounds', type=int, help='Force a decision after this many rounds')
    parser.add_argument('--seed', type=int, help='Seed for the random tie-break')
    parser.add_argument('--debug', action='store_true', default=None, help='Enable debug mode')
    return parser.parse_args(argv)

def merge_args(config: dict, args: argparse.Namespace) -> dict:
    """Sobrescreve a configuração carregada com os argumentos informados."""
    overrides = {
        ("node", "id"): args.id,
        ("node", "initial_value"): args.initial_value,
        ("node", "total_nodes"): args.total_nodes,
        ("node", "faulty"): args.faulty,
        ("networking", "host"): args.host,
        ("networking", "port"): args.port,
        ("networking", "peers"): args.peers.split(',') if args.peers else None,
        ("protocol", "collection_timeout"): args.collection_timeout,
        ("protocol", "wait_mode"): args.wait_mode,
        ("protocol", "max_rounds"): args.max_rounds,
        ("protocol", "seed"): args.seed,
    }
    for (section, key), value in overrides.items():
        if value is not None:
            config.setdefault(section, {})[key] = value
    return config

def build_node(config: dict, transport: Optional[HttpTransport] = None) -> ConsensusNode:
    node_cfg = config["node"]
    protocol = config["protocol"]
    seed = protocol.get("seed")
    return ConsensusNode(
        int(node_cfg["id"]),
        int(node_cfg["initial_value"]),
        int(node_cfg["total_nodes"]),
        faulty=bool(node_cfg.get("faulty", False)),
        transport=transport,
        collection_timeout=float(protocol["collection_timeout"]),
        wait_mode=protocol["wait_mode"],
        max_rounds=protocol.get("max_rounds"),
        rng=random.Random(seed) if seed is not None else None
    )

async def main(argv=None):
    """
    Função principal do nó de consenso.
    """
    args = parse_args(argv)
    config = merge_args(load_config(args.config), args)
    debug = args.debug if args.debug is not None else get_debug_mode()

    node_id = int(config["node"]["id"])
    component = f"node_{node_id}"
    setup_logging(component, debug, log_dir=config["logging"]["log_dir"])

    networking = config["networking"]
    urls = peer_urls(int(config["node"]["total_nodes"]), networking.get("peers"),
                     host=networking["peer_host"], base_port=int(networking["base_port"]))
    transport = HttpTransport(urls, timeout=float(networking["send_timeout"]))
    node = build_node(config, transport)

    port = networking.get("port") or node_port(node_id, int(networking["base_port"]))
    logger.info(f"Starting node {node_id} on port {port} "
                f"(initial value={config['node']['initial_value']}, "
                f"total nodes={config['node']['total_nodes']}, faulty={node.is_faulty()})")

    app = create_app(node, component)
    server = uvicorn.Server(uvicorn.Config(app, host=networking["host"], port=int(port), log_level="info"))
    try:
        await server.serve()
    finally:
        logger.info(f"Stopping node {node_id}...")
        await node.stop()
        await transport.close()

def run():
    try:
        asyncio.run(main())
    except ConfigurationError as e:
        raise SystemExit(f"Configuração inválida: {e}")

if __name__ == "__main__":
    run()
