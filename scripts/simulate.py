#!/usr/bin/env python3
"""
File: scripts/simulate.py
Executa uma rede de nós de consenso no mesmo processo e imprime o estado final.
"""
import argparse
import asyncio
import json
import logging

from node.network import launch_network, start_consensus, stop_consensus, wait_for_decisions

logger = logging.getLogger("simulate")

def parse_bits(raw: str):
    return [int(x.strip()) for x in raw.split(",") if x.strip()]

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulação local do consenso Ben-Or")
    parser.add_argument("--values", type=str, default="1,0,1",
                        help="Bits iniciais separados por vírgula (um por nó)")
    parser.add_argument("--faulty", type=str, default="",
                        help="IDs dos nós defeituosos, separados por vírgula")
    parser.add_argument("--timeout", type=float, default=30.0,
                        help="Tempo máximo da simulação em segundos")
    parser.add_argument("--collection-timeout", type=float, default=0.2,
                        help="Tempo de coleta por fase em segundos")
    parser.add_argument("--wait-mode", choices=["quorum", "fixed"], default="quorum")
    parser.add_argument("--max-rounds", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args(argv)

async def simulate(args) -> dict:
    values = parse_bits(args.values)
    faulty_ids = set(parse_bits(args.faulty))
    faulty = [i in faulty_ids for i in range(len(values))]

    nodes = launch_network(
        values, faulty,
        seed=args.seed,
        collection_timeout=args.collection_timeout,
        wait_mode=args.wait_mode,
        max_rounds=args.max_rounds
    )
    await start_consensus(nodes)
    states = await wait_for_decisions(nodes, args.timeout)
    await stop_consensus(nodes)

    decided = {s.value for s in states if s.decided}
    return {
        "nodes": [s.model_dump(mode="json") for s in states],
        "decided_values": sorted(decided),
        "agreement": len(decided) <= 1,
    }

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    result = asyncio.run(simulate(args))
    print(json.dumps(result, indent=2))

if __name__ == "__main__":
    main()
