#!/usr/bin/env python3
"""
File: scripts/consensus_control.py
Ferramenta para controlar um cluster de nós de consenso em execução.
Permite iniciar e parar o consenso e consultar estado e status dos nós.
"""
import sys
import argparse
import json
import requests
from typing import List, Dict, Any

# Configurações padrão
DEFAULT_BASE_PORT = 3000
DEFAULT_HOST = "localhost"
ACTIONS = ["start", "stop", "state", "status"]

# Rota HTTP de cada ação
ACTION_ROUTES = {
    "start": "/start",
    "stop": "/stop",
    "state": "/getState",
    "status": "/status",
}

def parse_args(argv=None):
    """Processa os argumentos da linha de comando."""
    parser = argparse.ArgumentParser(
        description="Controla os nós de um cluster de consenso Ben-Or"
    )

    parser.add_argument("--action", "-a", choices=ACTIONS, required=True,
                        help="Ação a ser executada")
    parser.add_argument("--total-nodes", "-t", type=int, required=True,
                        help="Número total de nós do cluster")
    parser.add_argument("--node-ids", "-n", type=str, default="all",
                        help="IDs dos nós (separados por vírgula ou 'all' para todos)")
    parser.add_argument("--host", type=str, default=DEFAULT_HOST,
                        help=f"Host dos nós (padrão: {DEFAULT_HOST})")
    parser.add_argument("--base-port", "-p", type=int, default=DEFAULT_BASE_PORT,
                        help=f"Porta do nó 0 (padrão: {DEFAULT_BASE_PORT})")
    parser.add_argument("--json", action="store_true",
                        help="Imprime os resultados em JSON")

    return parser.parse_args(argv)

def get_node_list(node_ids_arg: str, total_nodes: int) -> List[int]:
    """
    Determina a lista de nós a serem controlados.

    Args:
        node_ids_arg: String com IDs separados por vírgula ou 'all'
        total_nodes: Número total de nós

    Returns:
        List[int]: Lista de IDs dos nós
    """
    if node_ids_arg.lower() == "all":
        return list(range(total_nodes))

    try:
        ids = [int(x.strip()) for x in node_ids_arg.split(",")]
    except ValueError:
        print("Erro: Formato inválido para node-ids. Use 'all' ou números separados por vírgula.")
        sys.exit(1)

    for node_id in ids:
        if not 0 <= node_id < total_nodes:
            print(f"Aviso: ID {node_id} está fora do intervalo válido (0-{total_nodes - 1})")
    return ids

def control_node(node_id: int, action: str, host: str, base_port: int) -> Dict[str, Any]:
    """
    Executa uma ação em um nó específico.

    Returns:
        Dict[str, Any]: Resultado da operação
    """
    url = f"http://{host}:{base_port + node_id}{ACTION_ROUTES[action]}"

    try:
        response = requests.get(url, timeout=2)
    except requests.RequestException as e:
        return {"success": False, "node_id": node_id, "error": str(e)}

    try:
        body = response.json()
    except ValueError:
        body = {"raw": response.text}

    return {
        "success": response.status_code == 200,
        "node_id": node_id,
        "status_code": response.status_code,
        "response": body
    }

def describe(result: Dict[str, Any], action: str) -> str:
    """Linha legível com o resultado de um nó."""
    node_id = result["node_id"]
    if "error" in result:
        return f"❌ node-{node_id}: inacessível - {result['error']}"

    body = result["response"]
    if action == "state":
        return (f"{'✅' if result['success'] else '❌'} node-{node_id}: "
                f"killed={body.get('killed')} value={body.get('value')} "
                f"decided={body.get('decided')} round={body.get('round')}")

    mark = "✅" if result["success"] else "❌"
    detail = body.get("message", body)
    reason = body.get("reason")
    return f"{mark} node-{node_id}: {detail}" + (f" ({reason})" if reason else "")

def main(argv=None):
    """Função principal."""
    args = parse_args(argv)
    node_ids = get_node_list(args.node_ids, args.total_nodes)

    results = [control_node(node_id, args.action, args.host, args.base_port) for node_id in node_ids]

    if args.json:
        print(json.dumps(results, indent=2))
        return

    print(f"== {args.action} (nós: {node_ids}) ==")
    for result in results:
        print(describe(result, args.action))

    success_count = sum(1 for r in results if r["success"])
    print(f"\n== Resumo: {success_count}/{len(node_ids)} nós responderam com sucesso ==")

if __name__ == "__main__":
    main()
