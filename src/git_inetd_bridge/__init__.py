"""Serve the git smart HTTP protocol from inetd through git-http-backend."""

__version__ = "1.0.0"
