"""
sanctum.__main__ — Entry point for ``python -m sanctum``
=========================================================

Wiring:
1. Load .env (secrets, DATABASE_URL).
2. Load config.yaml (port, seeding, job cadence).
3. Serve :mod:`sanctum.api.main` with uvicorn.  The app lifespan builds
   the store, seeds demo data if asked and starts the periodic jobs.
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("sanctum")


def main() -> None:
    """Bootstrap and serve the Sanctum API."""
    load_dotenv()

    from sanctum.api.deps import get_config

    cfg = get_config()
    logger.info("Starting %s on port %d", cfg.community_name, cfg.api_port)
    uvicorn.run("sanctum.api.main:app", host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
