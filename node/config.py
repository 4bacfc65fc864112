"""
Configurações para o nó de consenso.
"""
from typing import Any, Dict, List, Optional

import yaml

from common.utils import get_env_bool, get_env_float, get_env_int, get_env_list, get_env_str


class ConfigurationError(ValueError):
    """Parâmetro de configuração inválido; fatal na construção do nó."""


WAIT_MODES = ("quorum", "fixed")

# Informações do nó
NODE_ID = get_env_int("NODE_ID", 0)
INITIAL_VALUE = get_env_int("INITIAL_VALUE", 0)
TOTAL_NODES = get_env_int("TOTAL_NODES", 3)
FAULTY = get_env_bool("FAULTY", False)

# Configurações do servidor
HOST = get_env_str("HOST", "0.0.0.0")
BASE_NODE_PORT = get_env_int("BASE_NODE_PORT", 3000)

# Endereços dos pares
PEER_HOST = get_env_str("PEER_HOST", "localhost")
PEERS = get_env_list("PEERS")

# Protocolo
COLLECTION_TIMEOUT = get_env_float("COLLECTION_TIMEOUT", 1.0)  # segundos
WAIT_MODE = get_env_str("WAIT_MODE", "quorum")
MAX_ROUNDS = get_env_int("MAX_ROUNDS", None)
SEND_TIMEOUT = get_env_float("SEND_TIMEOUT", 2.0)

LOG_DIR = get_env_str("LOG_DIR", "logs")


def node_port(node_id: int, base_port: int = BASE_NODE_PORT) -> int:
    """Porta HTTP de um nó: porta base + id."""
    return base_port + node_id

def peer_urls(total_nodes: int, peers: Optional[List[str]] = None, host: str = PEER_HOST,
              base_port: int = BASE_NODE_PORT) -> Dict[int, str]:
    """
    Monta o mapa id -> URL base de todos os nós do cluster.

    Args:
        total_nodes: Número total de nós
        peers: URLs explícitas indexadas pelo id do nó (sobrescreve host/porta)
        host: Host usado quando não há URLs explícitas
        base_port: Porta do nó 0

    Returns:
        Dict[int, str]: URLs base por id de nó
    """
    if peers:
        if len(peers) != total_nodes:
            raise ConfigurationError(
                f"PEERS tem {len(peers)} entradas, mas o cluster tem {total_nodes} nós"
            )
        return {i: url.rstrip("/") for i, url in enumerate(peers)}
    return {i: f"http://{host}:{node_port(i, base_port)}" for i in range(total_nodes)}

def default_config() -> Dict[str, Any]:
    """Configuração derivada das variáveis de ambiente."""
    return {
        "node": {
            "id": NODE_ID,
            "initial_value": INITIAL_VALUE,
            "total_nodes": TOTAL_NODES,
            "faulty": FAULTY,
        },
        "networking": {
            "host": HOST,
            "base_port": BASE_NODE_PORT,
            "peer_host": PEER_HOST,
            "peers": PEERS,
            "send_timeout": SEND_TIMEOUT,
        },
        "protocol": {
            "collection_timeout": COLLECTION_TIMEOUT,
            "wait_mode": WAIT_MODE,
            "max_rounds": MAX_ROUNDS,
        },
        "logging": {
            "log_dir": LOG_DIR,
        },
    }

def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Carrega a configuração do nó.

    Parte dos valores do ambiente e, se um arquivo YAML for informado,
    sobrescreve seção a seção com o conteúdo do arquivo.

    Raises:
        ConfigurationError: Se o arquivo não contiver um mapeamento YAML
    """
    config = default_config()
    if path is None:
        return config

    with open(path, "r") as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Arquivo de configuração inválido: {path}")

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config
