from __future__ import annotations

import os

import uvicorn

from taskboard.observability import configure_uvicorn_logging


def main() -> None:
    configure_uvicorn_logging()
    host = os.getenv("GATEWAY_HOST", "127.0.0.1")
    port_raw = (os.getenv("GATEWAY_PORT") or "").strip()
    try:
        port = int(port_raw) if port_raw else 8000
    except ValueError:
        port = 8000
    uvicorn.run("taskboard.gateway.asgi:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
