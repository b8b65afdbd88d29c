#!/usr/bin/env python3
"""
CLI: Check the remote pipeline setup: server reachable, checkpoints available,
push channel opens. Exit code 0 only when every check passes.
Usage:
  python scripts/check_server.py
  python scripts/check_server.py --server http://192.168.1.20:8188
"""
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import argparse
import logging

from promptreel.config import load_config
from promptreel.remote import RemotePipelineClient


def main() -> int:
    parser = argparse.ArgumentParser(description="Run connection diagnostics against the remote pipeline.")
    parser.add_argument("--server", type=str, default=None, help="Pipeline URL (overrides config).")
    parser.add_argument("--config", type=Path, default=None, help="Path to config YAML.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.server:
        config["remote"] = {**config.get("remote", {}), "server_url": args.server}

    with RemotePipelineClient.from_config(config) as client:
        print(f"Checking {client.server_url} ...")
        report = client.run_diagnostics()
        models = client.get_models() if report.server_available else []

    def mark(ok: bool) -> str:
        return "OK  " if ok else "FAIL"

    print(f"  [{mark(report.server_available)}] server available")
    print(f"  [{mark(report.models_loaded)}] models loaded ({len(models)} checkpoints)")
    print(f"  [{mark(report.websocket_connected)}] websocket connected")
    for name in models[:10]:
        print(f"      - {name}")
    if report.error:
        print(f"  Error: {report.error}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
