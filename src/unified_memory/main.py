"""Entrypoint: serve the memory API (ingest, infer, label, query) over HTTP."""

import argparse

import uvicorn

from unified_memory.api.app import create_app
from unified_memory.config.settings import Settings


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Run the Unified Memory Engine server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args()

    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
