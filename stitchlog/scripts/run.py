"""Serve the Stitch Log API with uvicorn."""

import argparse
import os

import uvicorn

from stitchlog.config import config


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Stitch Log API server.")
    parser.add_argument("--host", default=os.getenv("BIND_HOST", "127.0.0.1"))
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("BIND_PORT", str(config.PORT)))
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=config.DEBUG,
        help="Restart on code changes (default: on when DEBUG=true)",
    )
    args = parser.parse_args()

    uvicorn.run(
        "stitchlog.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
