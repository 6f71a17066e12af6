"""Run the signaling server with uvicorn."""
from __future__ import annotations

import uvicorn

from .core.config import settings


def main() -> None:
    uvicorn.run(
        "rendezvous.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
