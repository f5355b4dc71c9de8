#!/usr/bin/env python3
"""
ProfileVault -- authentication and profile-management backend.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  SECRET_KEY      Required unless DEBUG=true. At least 32 characters.
  DEBUG           true for local development (auto-generates SECRET_KEY).
  PORT / HOST     Listen address. Defaults 127.0.0.1:3001.
  CLIENT_ORIGIN   Browser origin allowed to call the API with cookies.
  STORE_URL       SQLAlchemy URL for user records, or memory://.
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="profilevault",
        description="Run the ProfileVault API server.",
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Listen port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
