#!/usr/bin/env python3
"""
LinkedIn Growth Coach - API server and helper commands.
"""

import argparse
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep coach imports lazy (inside functions) so `--help` stays cheap.
#


def print_login_url(return_to: str) -> int:
    """Print the LinkedIn authorization URL a browser would be sent to."""
    from coach.auth.config import load_auth_config
    from coach.auth.flow import start_login
    from coach.auth.provider import build_providers

    cfg = load_auth_config()
    provider = build_providers(cfg).get("linkedin")
    if provider is None:
        print("LinkedIn login is not configured (set LINKEDIN_CLIENT_ID and LINKEDIN_CLIENT_SECRET)", file=sys.stderr)
        return 1
    start = start_login(provider, cfg, return_to)
    print(start.authorization_url)
    return 0


def init_demo() -> int:
    """Seed a fresh in-memory store and print the demo login."""
    from coach.content.demo import DEMO_PASSWORD, DEMO_USERNAME, seed_demo
    from coach.storage.memory_store import MemoryStore

    store = MemoryStore()
    account = seed_demo(store)
    print(
        json.dumps(
            {
                "ok": account is not None,
                "login": {"username": DEMO_USERNAME, "password": DEMO_PASSWORD},
                "posts": len(store.posts),
                "goals": len(store.goals),
                "suggestions": len(store.suggestions),
            },
            indent=2,
        )
    )
    return 0


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="LinkedIn Growth Coach API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the API server
  python main.py --serve --port 5000

  # Show the LinkedIn login URL for a return path
  python main.py --print-login-url --return-to /dashboard
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API server")
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=5000, help="Server listen port (default: 5000)")
    parser.add_argument("--init-demo", action="store_true", help="Seed demo data into a fresh store and print it")
    parser.add_argument("--print-login-url", action="store_true", help="Print the LinkedIn authorization URL")
    parser.add_argument("--return-to", default="/dashboard", help="Post-login path for --print-login-url")

    args = parser.parse_args()

    if args.serve:
        from coach.api.server import run

        run(host=args.host, port=args.port)
        return

    if args.init_demo:
        sys.exit(init_demo())

    if args.print_login_url:
        sys.exit(print_login_url(args.return_to))

    parser.print_help()


if __name__ == "__main__":
    main()
