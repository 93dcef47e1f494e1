"""
Configuration for the bridge, loaded from environment variables.
"""
import os
import logging
from typing import Mapping, Optional, Dict

from dotenv import load_dotenv

from .errors import ConfigurationError


class Config:
    """Explicit configuration passed through the pipeline."""

    def __init__(
        self,
        backend_bin: Optional[str],
        project_root: Optional[str],
        log_level: str = "ERROR",
        log_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.backend_bin = backend_bin or ""
        self.project_root = project_root or ""
        self.log_level = log_level
        self.log_file = log_file or None
        # Inherited environment handed on to the backend
        self.environ: Dict[str, str] = dict(environ or {})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build a Config from the process environment.

        Args:
            environ: Mapping to read instead of os.environ. When given, no
                .env file is loaded.

        Returns:
            Config instance
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        return cls(
            backend_bin=environ.get("GIT_HTTP_BACKEND_BIN"),
            project_root=environ.get("GIT_PROJECT_ROOT"),
            log_level=environ.get("LOG_LEVEL", "ERROR"),
            log_file=environ.get("LOG_FILE"),
            environ=environ,
        )

    def validate(self) -> None:
        """
        Check the required paths before any request byte is read.

        Raises:
            ConfigurationError: If a path is missing, the backend is not an
                executable file or the project root is not a directory.
        """
        if not self.backend_bin or not self.project_root:
            raise ConfigurationError(detail="GIT_HTTP_BACKEND_BIN and GIT_PROJECT_ROOT must both be set")
        if not os.path.isfile(self.backend_bin) or not os.access(self.backend_bin, os.X_OK):
            raise ConfigurationError(detail=f"backend is not executable: {self.backend_bin}")
        if not os.path.isdir(self.project_root):
            raise ConfigurationError(detail=f"project root is not a directory: {self.project_root}")


def setup_logging(config: Config) -> logging.Logger:
    """Configure logging based on LOG_LEVEL and LOG_FILE."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.ERROR),
        format='%(asctime)s - %(levelname)s - %(message)s',
        filename=config.log_file,
    )
    return logging.getLogger(__name__)
