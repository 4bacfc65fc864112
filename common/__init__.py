"""
Camada compartilhada entre os nós: modelos, logging, métricas e comunicação HTTP.
"""
