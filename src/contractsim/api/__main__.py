# src/contractsim/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from contractsim.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so CSIM_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (config is read at import time)
    from contractsim.api.app import create_app
    from contractsim.api.structured_logging import configure_structured_logging
    from contractsim.runtime.sim_config import load_sim_config

    cfg = load_sim_config()
    configure_structured_logging(cfg.log_level)

    host = os.getenv("CSIM_API_HOST", cfg.api_host)
    port = int(os.getenv("CSIM_API_PORT", str(cfg.api_port)))

    uvicorn.run(create_app(), host=host, port=port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
