"""Application-wide configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

# Redis
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
REDIS_SOCKET_TIMEOUT: float = float(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))

# ── Profile Aggregation ──────────────────────────────────────────────────

AGGREGATION_WINDOW_DAYS: int = int(os.getenv("AGGREGATION_WINDOW_DAYS", "7"))
AGGREGATION_INTERVAL: int = int(os.getenv("AGGREGATION_INTERVAL", "3600"))  # 1 hour
AGGREGATION_MAX_WORKERS: int = int(os.getenv("AGGREGATION_MAX_WORKERS", "1"))

# Seasonal rules are mined from this many most recent focus-history records
SEASONAL_HISTORY_LIMIT: int = int(os.getenv("SEASONAL_HISTORY_LIMIT", "90"))

# ── Contextual Selection ─────────────────────────────────────────────────

SELECTOR_TASK_LIMIT: int = int(os.getenv("SELECTOR_TASK_LIMIT", "50"))
DOMINO_BATCH_SIZE: int = int(os.getenv("DOMINO_BATCH_SIZE", "10"))
DEFAULT_COMPANION_NAME: str = os.getenv("DEFAULT_COMPANION_NAME", "Your companion")

# Remote domino analyzer. Empty = in-process keyword analyzer.
DOMINO_ANALYZER_URL: str = os.getenv("DOMINO_ANALYZER_URL", "")
DOMINO_TIMEOUT_SECONDS: float = float(os.getenv("DOMINO_TIMEOUT_SECONDS", "3"))

# ── Agent Configuration ──────────────────────────────────────────────────

AGGREGATOR_AGENT_SEED: str = os.getenv(
    "AGGREGATOR_AGENT_SEED", "memory-engine-aggregator-seed-v1"
)
AGGREGATOR_AGENT_PORT: int = int(os.getenv("AGGREGATOR_AGENT_PORT", "8006"))

# Set to "agentverse" to deploy on Agentverse (uses mailbox, no local endpoint).
# Set to "local" (default) for local dev with localhost endpoints.
AGENT_DEPLOY_MODE: str = os.getenv("AGENT_DEPLOY_MODE", "local")
AGENT_ENDPOINT_BASE: str = os.getenv("AGENT_ENDPOINT_BASE", "http://localhost")

# ── Server Configuration ─────────────────────────────────────────────────

SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
