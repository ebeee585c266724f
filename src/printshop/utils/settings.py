"""Runtime settings, read once from the environment (and a local .env file)."""

import json
import os

from dotenv import load_dotenv

load_dotenv()

CART_TTL_DAYS = int(os.getenv("CART_TTL_DAYS", 14))
RETENTION_BUFFER_DAYS = int(os.getenv("RETENTION_BUFFER_DAYS", 7))

# Cart summaries show tax at this state's rate until a shipping state is known
DEFAULT_TAX_STATE = os.getenv("DEFAULT_TAX_STATE", "MA")
TAX_RATE_ADAPTER = os.getenv("TAX_RATE_ADAPTER", "settings")
TAX_RATES = json.loads(
    os.getenv(
        "TAX_RATES",
        '{"by_state": {"MA": 0.0625, "NH": 0.0, "NY": 0.04, "CA": 0.0725}, "default": 0.0625}',
    )
)

SEQUENCE_MAX_ATTEMPTS = int(os.getenv("SEQUENCE_MAX_ATTEMPTS", 5))
