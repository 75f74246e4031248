"""
Run the XP graph server.

    python -m xpgraph
    python -m xpgraph --port 8000 --reload
"""

import argparse

import uvicorn

from .settings import settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve the XP → Level graph API.")
    parser.add_argument("--host", default=settings.HOST, help=f"Bind address (default: {settings.HOST}).")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port (default: {settings.PORT}).")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development).")
    args = parser.parse_args()

    print(f"Server running on http://localhost:{args.port}")
    uvicorn.run(
        "xpgraph.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
