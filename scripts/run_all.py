#!/usr/bin/env python3
"""Launch the FastAPI server and the aggregator agent together.

Usage:
    python scripts/run_all.py

The server runs under uvicorn and the agent on its own uAgents loop, each in
a separate process.

Ports:
    8000  FastAPI server  (REST)
    8006  Aggregator agent
"""

from __future__ import annotations

import logging
import multiprocessing
import signal
import sys
import time
from pathlib import Path

# Ensure the project root is on sys.path so `from memory_engine.…` imports work
_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

from memory_engine.config.settings import (
    AGGREGATOR_AGENT_PORT,
    LOG_LEVEL,
    SERVER_HOST,
    SERVER_PORT,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s  %(levelname)-7s  %(name)-22s  %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run_all")


# ── Process targets ──────────────────────────────────────────────────────

def _run_server():
    import uvicorn
    uvicorn.run(
        "memory_engine.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        log_level=LOG_LEVEL.lower(),
        reload=False,
    )


def _run_agent(port: int):
    from memory_engine.agents.aggregator_agent import create_aggregator_agent

    agent = create_aggregator_agent(port=port)
    logger.info("Starting aggregator agent on port %d (address: %s)", port, agent.address)
    agent.run()


# ── Main ─────────────────────────────────────────────────────────────────

def main():
    logger.info("=" * 60)
    logger.info("  MEMORY ENGINE")
    logger.info("=" * 60)
    logger.info("  FastAPI server    →  http://localhost:%d", SERVER_PORT)
    logger.info("  Aggregator agent  →  port %d", AGGREGATOR_AGENT_PORT)
    logger.info("  Press Ctrl+C to stop all processes")
    logger.info("=" * 60)

    processes: list[multiprocessing.Process] = [
        multiprocessing.Process(target=_run_server, name="fastapi-server", daemon=True),
        multiprocessing.Process(
            target=_run_agent, args=(AGGREGATOR_AGENT_PORT,), name="agent-aggregator", daemon=True
        ),
    ]
    for p in processes:
        p.start()
        logger.info("%s started (pid %d)", p.name, p.pid)
        # Give the server a moment to bind its port
        time.sleep(1)

    def _shutdown(signum, frame):
        logger.info("Shutting down all processes...")
        for proc in processes:
            if proc.is_alive():
                proc.terminate()
        for proc in processes:
            proc.join(timeout=5)
            if proc.is_alive():
                proc.kill()
        logger.info("All processes stopped.")
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    while True:
        for proc in processes:
            if not proc.is_alive():
                logger.warning("Process %s (pid %d) exited with code %s", proc.name, proc.pid, proc.exitcode)
        time.sleep(5)


if __name__ == "__main__":
    multiprocessing.set_start_method("spawn", force=True)
    main()
