"""Run the relay with uvicorn: ``python -m relay``."""
from __future__ import annotations

import uvicorn

from .core.config import settings
from .core.logging import configure_logging


def main() -> None:
    configure_logging(settings.log_level)
    uvicorn.run(
        "relay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        ws="websockets",
    )


if __name__ == "__main__":
    main()
