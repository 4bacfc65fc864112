"""
Configuração de métricas Prometheus para os nós de consenso.
"""
from prometheus_client import Counter, Histogram, Gauge


node_metrics = {
    "rounds_total": Counter(
        "benor_rounds_total",
        "Número de rodadas concluídas sem decisão",
        ["node_id"]
    ),
    "decisions_total": Counter(
        "benor_decisions_total",
        "Número de decisões tomadas",
        ["node_id", "forced"]
    ),
    "random_choices": Counter(
        "benor_random_choices_total",
        "Número de vezes em que o valor foi sorteado por falta de maioria",
        ["node_id"]
    ),
    "messages_received": Counter(
        "benor_messages_received_total",
        "Número de mensagens armazenadas",
        ["node_id", "kind"]
    ),
    "messages_dropped": Counter(
        "benor_messages_dropped_total",
        "Número de mensagens descartadas na admissão",
        ["node_id", "reason"]
    ),
    "broadcast_failures": Counter(
        "benor_broadcast_failures_total",
        "Número de envios a pares que falharam",
        ["node_id"]
    ),
    "phase_duration": Histogram(
        "benor_phase_duration_seconds",
        "Duração da coleta de mensagens por fase",
        ["node_id", "phase"]
    ),
    "current_round": Gauge(
        "benor_current_round",
        "Rodada atual do nó",
        ["node_id"]
    )
}
