"""capture_bridge.host.main

Local capture host daemon.

Goal: own a broker and provide a stable localhost API for the scripting side
and for the device client that fulfils prompts and actions.

Run:
  python -m capture_bridge.host
  # or: capture-bridge-host
"""

from __future__ import annotations

import logging
import os

import uvicorn

from capture_bridge.host.api import create_app


def main() -> None:
    host = os.environ.get("CAPTURE_BRIDGE_HOST", "127.0.0.1")
    port = int(os.environ.get("CAPTURE_BRIDGE_PORT", "17124"))

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    app = create_app()
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
