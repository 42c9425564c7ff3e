#!/usr/bin/env python3
"""Start the News Synchronization Engine API server.

This script starts the FastAPI application with uvicorn.

Usage:
    python scripts/start_server.py

Or with custom settings:
    python scripts/start_server.py --host 0.0.0.0 --port 8000 --reload
"""

import argparse
import sys

import uvicorn

from news_sync.core.config import settings


def main() -> int:
    """Start the API server."""
    parser = argparse.ArgumentParser(description="Start the News Synchronization Engine API")
    parser.add_argument(
        "--host",
        default=settings.api_host,
        help=f"Host to bind to (default: {settings.api_host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.api_port,
        help=f"Port to bind to (default: {settings.api_port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level (default: info)",
    )

    args = parser.parse_args()

    print("=" * 80)
    print("  NEWS SYNCHRONIZATION ENGINE")
    print("=" * 80)
    print("\nStarting API server...")
    print(f"   Host: {args.host}")
    print(f"   Port: {args.port}")
    print(f"   Reload: {args.reload}")
    print(f"   Log Level: {args.log_level}")
    print("\nDocumentation:")
    print(f"   Swagger UI: http://{args.host}:{args.port}/docs")
    print(f"   ReDoc: http://{args.host}:{args.port}/redoc")
    print(f"\nSync endpoints are mounted under {settings.api_prefix}/admin")
    print(f"Check {settings.api_prefix}/health for system status")
    print("\n" + "=" * 80 + "\n")

    try:
        uvicorn.run(
            "news_sync.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
        )
    except KeyboardInterrupt:
        print("\n\nServer stopped by user")
        return 0
    except Exception as e:
        print(f"\n\nError starting server: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
