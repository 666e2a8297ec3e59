"""gatehouse entrypoint.

Run with:
  python -m gatehouse
"""

import logging

import uvicorn
from dotenv import load_dotenv

from gatehouse.api.app import create_app
from gatehouse.core.settings import Settings


def main() -> None:
    load_dotenv()
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Server running on port %s", settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
