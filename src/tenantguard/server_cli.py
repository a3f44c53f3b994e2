"""CLI entry point for the TenantGuard API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="tenantguard-server",
        description="TenantGuard API server — configuration risk and guided remediation",
    )
    parser.add_argument("--host", default=None, help="Bind host (default: TENANTGUARD_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: TENANTGUARD_PORT or 8090)")
    parser.add_argument(
        "--directory-url",
        default=None,
        help="Base URL of the console backend (sets TENANTGUARD_DIRECTORY_API_URL)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    args = parser.parse_args(argv)

    # Settings are read at import time, so overrides must be in the env first
    if args.directory_url:
        os.environ["TENANTGUARD_DIRECTORY_API_URL"] = args.directory_url
    if args.json_logs:
        os.environ["TENANTGUARD_JSON_LOGS"] = "1"

    import uvicorn

    from tenantguard.config import settings

    uvicorn.run(
        "tenantguard.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
    )


if __name__ == "__main__":
    main()
