"""
PerfSight Web Server Entry Point

Provides the `perfsight-web` command to start the FastAPI server.

Usage:
    perfsight-web                    # Start on default port 8000
    perfsight-web --port 9000        # Start on custom port
    perfsight-web --host 127.0.0.1   # Bind to localhost only
    perfsight-web --reload           # Enable auto-reload for development
"""

import argparse
import logging

import uvicorn

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the PerfSight web server."""
    parser = argparse.ArgumentParser(
        description="PerfSight CS2 Performance Analytics - Web Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    perfsight-web                     Start server on http://0.0.0.0:8000
    perfsight-web --port 9000         Start on port 9000
    perfsight-web --host 127.0.0.1    Bind to localhost only
    perfsight-web --reload            Enable auto-reload (development)
        """,
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )

    args = parser.parse_args()

    logger.info("Starting PerfSight web server on http://%s:%s", args.host, args.port)
    logger.info("Press Ctrl+C to stop")

    uvicorn.run(
        "perfsight.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
