"""Run the snippetbox server: ``python -m snippetbox``."""

import argparse

import uvicorn

from snippetbox.app import create_app
from snippetbox.config import Settings, configure_logging


def main(argv: list[str] | None = None) -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(prog="snippetbox", description="Run the snippetbox server.")
    parser.add_argument("--host", default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
