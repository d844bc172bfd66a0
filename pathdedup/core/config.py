#!/usr/bin/env python3
"""
Run configuration for PathDedup
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .fingerprint import HASH_ALGORITHMS, XXHASH_AVAILABLE

logger = logging.getLogger(__name__)

# Files scanned per volume in --test mode
TEST_SAMPLE_LIMIT = 1000

TIE_BREAK_POLICIES = ("first", "name")


class ConfigurationError(ValueError):
    """Fatal problem with the run setup; nothing has been scanned yet."""


@dataclass
class Config:
    """Cleanup configuration with smart defaults"""
    # Volume discovery
    mount_root: str = "/mnt"
    volume_pattern: str = "disk[0-9]*"
    volume_paths: List[str] = field(default_factory=list)

    # Mode
    dry_run: bool = False
    sample_limit: Optional[int] = None

    # Performance
    workers: int = field(default_factory=lambda: min(8, os.cpu_count() or 4))
    chunk_size: int = 1024 * 1024  # 1 MB
    progress_interval: int = 500

    # Hashing
    hash_algorithm: str = "md5"  # md5, sha1, sha256, xxhash
    retry_attempts: int = 2
    retry_backoff: float = 0.2

    # Retention policy
    tie_break: str = "first"  # first, name

    # Output
    quiet: bool = False
    verbose: bool = False

    def validate(self) -> None:
        """Validate configuration"""
        if self.workers < 1:
            raise ConfigurationError("Workers must be >= 1")
        if self.chunk_size < 1024:
            raise ConfigurationError("Chunk size must be >= 1KB")
        if self.sample_limit is not None and self.sample_limit < 1:
            raise ConfigurationError("Sample limit must be >= 1")
        if self.retry_attempts < 1:
            raise ConfigurationError("Retry attempts must be >= 1")
        if self.progress_interval < 0:
            raise ConfigurationError("Progress interval cannot be negative")
        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise ConfigurationError(f"Unknown hash algorithm: {self.hash_algorithm}")
        if self.hash_algorithm == "xxhash" and not XXHASH_AVAILABLE:
            raise ConfigurationError("xxhash requested but not installed (pip install pathdedup[fast])")
        if self.tie_break not in TIE_BREAK_POLICIES:
            raise ConfigurationError(f"Unknown tie-break policy: {self.tie_break}")
