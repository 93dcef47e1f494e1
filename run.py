#!/usr/bin/env python3
"""
Run git-inetd-bridge from a source checkout.

Usage (as the inetd program):
    /usr/bin/env GIT_HTTP_BACKEND_BIN=... GIT_PROJECT_ROOT=... python3 /path/to/run.py
    python3 run.py check
"""
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src'))

from git_inetd_bridge.cli import main


if __name__ == "__main__":
    sys.exit(main())
