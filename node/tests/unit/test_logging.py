"""
File: node/tests/unit/test_logging.py
Unit tests for the in-memory log buffer served by /logs.
"""
import logging

import pytest

from common.logging import IMPORTANT, get_log_entries, setup_logging


@pytest.fixture
def node_logging(tmp_path):
    """Configures logging for node_9 and restores the root handlers afterwards."""
    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level

    setup_logging("node_9", debug=True, log_dir=str(tmp_path))
    yield

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)

def test_buffer_keeps_adapter_node_id(node_logging):
    log = logging.LoggerAdapter(logging.getLogger("node.consensus"), {"node_id": 9})

    log.info("rodada 0 iniciada")

    entry = get_log_entries("node_9", limit=1)[0]
    assert entry["message"] == "rodada 0 iniciada"
    assert entry["node_id"] == 9
    assert entry["logger"] == "node.consensus"

def test_buffer_without_node_id(node_logging):
    logging.getLogger("node.api").warning("sem nó")

    entry = get_log_entries("node_9", limit=1)[0]
    assert entry["node_id"] is None
    assert entry["level"] == "WARNING"

def test_buffer_filters_by_level(node_logging):
    log = logging.LoggerAdapter(logging.getLogger("node.consensus"), {"node_id": 9})
    log.debug("detalhe")
    log.log(IMPORTANT, "Nó 9 decidiu 1")

    entries = get_log_entries("node_9", level="IMPORTANT")

    assert [e["message"] for e in entries] == ["Nó 9 decidiu 1"]
