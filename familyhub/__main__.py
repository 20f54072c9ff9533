"""Run the FamilyHub server: `python -m familyhub`."""

import logging

import uvicorn

from familyhub.config import settings
from familyhub.main import create_app


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
