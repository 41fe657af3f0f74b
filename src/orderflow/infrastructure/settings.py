"""Runtime settings, read from the environment (or a ``.env`` file) via python-decouple."""

from __future__ import annotations

from pathlib import Path

from decouple import config

# Resolve the default data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

DATA_DIR = Path(config("ORDERFLOW_DATA_DIR", default=str(_DEFAULT_DATA_DIR)))
RESERVATION_TTL_HOURS = config("ORDERFLOW_RESERVATION_TTL_HOURS", default=24, cast=int)
LOCK_TIMEOUT_SECONDS = config("ORDERFLOW_LOCK_TIMEOUT_SECONDS", default=5.0, cast=float)
LOG_LEVEL = config("ORDERFLOW_LOG_LEVEL", default="INFO")
LOG_JSON = config("ORDERFLOW_LOG_JSON", default=False, cast=bool)
