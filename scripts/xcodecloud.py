#!/usr/bin/env python3
"""
xcodecloud.py - Entry point for the Xcode Cloud TUI.

Usage:
    python scripts/xcodecloud.py            # Browse Xcode Cloud (mock data without credentials)
    python scripts/xcodecloud.py --debug    # Also log to tui_debug.log
    python scripts/xcodecloud.py --help

Credentials are read from the environment (or a .env file):
    APPSTORE_CONNECT_API_ISSUER_ID
    APPSTORE_CONNECT_API_KEY_ID
    APPSTORE_CONNECT_API_KEY
"""

import argparse
import sys

from version import __version__


def main():
    """Main entry point."""
    # Load .env file from current directory or parents
    from dotenv import load_dotenv
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="xcodecloud-tui",
        description="Xcode Cloud TUI - Browse products, workflows, build runs and logs"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to tui_debug.log"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        print("xcodecloud-tui requires an interactive TTY.", file=sys.stderr)
        sys.exit(1)

    # Run the TUI
    from tui.app import run_tui
    run_tui(debug=args.debug)


if __name__ == "__main__":
    main()
