#!/usr/bin/env python
"""
Checkout Analytics API server

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py --workers 4
    Gunicorn:     python run_server.py --gunicorn

The package must be installed (pip install -e .).
"""

import argparse
import os
import subprocess
from typing import List, Optional

APP = "checkout_analytics.main:app"
DEFAULT_PORT = 8000


def run_dev_server(host: str, port: int) -> None:
    """Single process with auto-reload and console logs."""
    import uvicorn

    os.environ.setdefault("LOG_FORMAT", "text")
    uvicorn.run(
        APP,
        host=host,
        port=port,
        reload=True,
        reload_dirs=["checkout_analytics"],
        log_level="debug",
    )


def run_prod_server(host: str, port: int, workers: int) -> None:
    """Uvicorn worker processes behind a proxy."""
    import uvicorn

    uvicorn.run(
        APP,
        host=host,
        port=port,
        workers=workers,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def gunicorn_command(host: str, port: int, workers: Optional[int] = None) -> List[str]:
    cmd = ["gunicorn", APP, "-c", "gunicorn.conf.py", "--bind", f"{host}:{port}"]
    if workers:
        cmd += ["--workers", str(workers)]
    return cmd


def run_gunicorn(host: str, port: int, workers: Optional[int] = None) -> int:
    return subprocess.run(gunicorn_command(host, port, workers)).returncode


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Checkout Analytics API server")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dev", action="store_true", help="Auto-reload development server")
    mode.add_argument("--gunicorn", action="store_true", help="Run under Gunicorn")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", DEFAULT_PORT)),
        help=f"Port to listen on (default: $PORT or {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("WORKERS", 4)),
        help="Worker processes; rate limits apply per worker",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.dev:
        run_dev_server(args.host, args.port)
    elif args.gunicorn:
        return run_gunicorn(args.host, args.port, args.workers)
    else:
        run_prod_server(args.host, args.port, args.workers)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
