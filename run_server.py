#!/usr/bin/env python
"""
Run the MEXC P2P proxy - entry point script for the ads proxy server.

Location: run_server.py
Purpose: Entry point for running the signed, rate-limited P2P proxy
Relevant files: src/mexc_p2p/server.py, config.yml, .env

Usage:
    python run_server.py
    python run_server.py --port 8080 --sign_policy insertion

Settings are layered: config.yml, then MEXC_P2P_* environment variables
(a .env file is honoured), then command line flags.
"""

import argparse
import logging
from dataclasses import replace
from pathlib import Path

import yaml


def load_config():
    """Load the server section of config.yml"""
    config_path = Path(__file__).parent / "config.yml"
    if config_path.exists():
        with open(config_path) as f:
            return (yaml.safe_load(f) or {}).get("server", {})
    return {}


def main():
    from mexc_p2p.models import ServerConfig
    from mexc_p2p.server import run

    config = ServerConfig.from_env(ServerConfig.from_dict(load_config()))

    parser = argparse.ArgumentParser(description="Run MEXC P2P ads proxy")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument("--log_level", default=config.log_level)
    parser.add_argument("--sign_policy", default=config.sign_policy.value, choices=["sorted", "insertion"])
    args = parser.parse_args()

    config = replace(
        config,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        sign_policy=args.sign_policy,
    )

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    logging.getLogger(__name__).info(
        f"MEXC P2P proxy running on http://{config.host}:{config.port}"
    )
    run(config)


if __name__ == "__main__":
    main()
