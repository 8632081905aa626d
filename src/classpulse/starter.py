#!/usr/bin/env python3
"""
ClassPulse - API launcher

    python -m classpulse.starter [--host HOST] [--port PORT]
"""

import argparse

import uvicorn

from classpulse.core.services.logging import get_logging_service
from classpulse.core.services.settings_config_service import get_settings_service


def main(argv=None):
    settings = get_settings_service()
    parser = argparse.ArgumentParser(description="Run the ClassPulse API server")
    parser.add_argument("--host", default=settings.get("server", "host", "127.0.0.1"))
    parser.add_argument(
        "--port", type=int, default=settings.getint("server", "port", 8000)
    )
    args = parser.parse_args(argv)

    # Configure structlog handlers before uvicorn starts logging
    get_logging_service()
    print(f"Starting ClassPulse on http://{args.host}:{args.port}")

    uvicorn.run(
        "classpulse.api.main:app",
        host=args.host,
        port=args.port,
        log_level="info",
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
