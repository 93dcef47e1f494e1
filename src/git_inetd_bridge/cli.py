#!/usr/bin/env python3
"""
git-inetd-bridge CLI

Usage:
    git-inetd-bridge            # serve one connection on stdin/stdout (inetd)
    git-inetd-bridge serve      # same
    git-inetd-bridge check      # validate GIT_HTTP_BACKEND_BIN / GIT_PROJECT_ROOT

A sample inetd.conf line:
    githttp stream tcp nowait gituser /usr/bin/env env \\
        GIT_HTTP_BACKEND_BIN=/usr/lib/git-core/git-http-backend \\
        GIT_PROJECT_ROOT=/srv/git git-inetd-bridge
"""
import os
import sys
import argparse
import logging

from .core import Config, ConfigurationError, setup_logging
from .main import handle_connection

logger = logging.getLogger(__name__)


def cmd_serve(config: Config) -> int:
    """Handle the connection on stdin/stdout."""
    setup_logging(config)
    # Unbuffered, so bytes after the header block stay in the descriptor
    # for the backend to read
    instream = open(sys.stdin.fileno(), "rb", buffering=0, closefd=False)
    outstream = sys.stdout.buffer
    try:
        handle_connection(config, instream, outstream)
        outstream.flush()
    except BrokenPipeError:
        logger.info("Client closed the connection")
        # Stop the interpreter from flushing into the closed socket at exit
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    return 0


def cmd_check(config: Config) -> int:
    """Print configuration status."""
    print(f"GIT_HTTP_BACKEND_BIN: {config.backend_bin or '(not set)'}")
    print(f"GIT_PROJECT_ROOT:     {config.project_root or '(not set)'}")
    try:
        config.validate()
    except ConfigurationError as e:
        print(f"  ✗ {e.detail}")
        return 1
    print("  ✓ Configuration is valid")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Serve one git smart HTTP request from inetd via git-http-backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  git-inetd-bridge            Serve one request on stdin/stdout
  git-inetd-bridge check      Check the configuration
        """
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "check"],
        help="Command to run (default: serve)"
    )

    args = parser.parse_args(argv)
    config = Config.from_env()

    if args.command == "check":
        return cmd_check(config)
    return cmd_serve(config)


if __name__ == "__main__":
    sys.exit(main())
