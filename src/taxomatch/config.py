"""Configuration for TaxoMatch.

A single module-level ``config`` object holds the defaults used by the
pipelines, the HTTP clients and the download cache. The CLI updates it from
command-line arguments before running a command.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from taxomatch.constants import (
    ALGAEBASE_BASE_URL,
    DEFAULT_CORRECTION_THRESHOLD,
    DEFAULT_RECORD_THRESHOLD,
    DEFAULT_SOURCE_PRECEDENCE,
    WORMS_BASE_URL,
)


class Config:
    """Runtime configuration for TaxoMatch."""

    def __init__(self):
        # Cache settings
        self.cache_base_dir = os.environ.get(
            "TAXOMATCH_CACHE_DIR",
            str(Path.home() / ".cache" / "taxomatch"),
        )
        self.cache_dir = self.cache_base_dir
        self.cache_max_age: Optional[int] = 7 * 24 * 3600  # one week

        # Output settings
        self.output_format = "csv"
        self.show_progress = True

        # Matching settings
        self.correction_threshold = DEFAULT_CORRECTION_THRESHOLD
        self.record_threshold = DEFAULT_RECORD_THRESHOLD
        self.source_precedence: List[str] = list(DEFAULT_SOURCE_PRECEDENCE)

        # Remote services
        self.algaebase_base_url = ALGAEBASE_BASE_URL
        self.algaebase_api_key = os.environ.get("ALGAEBASE_API_KEY", "")
        self.worms_base_url = WORMS_BASE_URL
        self.request_timeout = 30.0
        self.page_count = 10000

    def update(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from a dictionary.

        Args:
            config_dict: Dictionary of configuration parameters to update

        Raises:
            ValueError: If a key is not a known configuration parameter
        """
        for key, value in config_dict.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration parameter: {key}")

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """Update configuration from parsed command-line arguments.

        Only arguments that match a configuration attribute and are not None
        are applied; everything else is ignored.
        """
        for key, value in args.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)

    def ensure_directories(self) -> None:
        """Create the cache directories if they do not exist."""
        Path(self.cache_base_dir).mkdir(parents=True, exist_ok=True)
        Path(self.cache_dir).mkdir(parents=True, exist_ok=True)

    def get_config_summary(self) -> str:
        """Return a human-readable summary of the configuration."""
        api_key_state = "set" if self.algaebase_api_key else "not set"
        lines = [
            "TaxoMatch Configuration:",
            f"  Cache directory: {self.cache_dir}",
            f"  Cache max age: {self.cache_max_age}",
            f"  Output format: {self.output_format}",
            f"  Correction threshold: {self.correction_threshold}",
            f"  Record threshold: {self.record_threshold}",
            f"  Source precedence: {', '.join(self.source_precedence)}",
            f"  AlgaeBase URL: {self.algaebase_base_url}",
            f"  AlgaeBase API key: {api_key_state}",
            f"  WoRMS URL: {self.worms_base_url}",
            f"  Request timeout: {self.request_timeout}s",
            f"  Page count: {self.page_count}",
        ]
        return "\n".join(lines)


config = Config()
