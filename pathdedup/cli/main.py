#!/usr/bin/env python3
"""
PathDedup - Path-Aware Cross-Volume Duplicate Cleanup

Only files that exist at the same relative path on two or more volumes are
fingerprinted, which makes this orders of magnitude faster than hashing a
whole array. Redundant copies are deleted, keeping the copy on the volume
with the most free space at the moment of each decision.

Features:
- Volume auto-detection (/mnt/disk1, /mnt/disk2, ...) or explicit roots
- Size-tiered fingerprints reading at most 2 MiB per file
- Dry-run reporting and a fast sampling test mode
- Threaded processing with a clean stop on SIGINT/SIGTERM
"""

import argparse
import logging
import signal
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

from .. import __version__
from ..core.cleanup import CleanupDriver, CleanupStats
from ..core.config import TEST_SAMPLE_LIMIT, Config, ConfigurationError
from ..core.volumes import Volume, build_volume_table, check_volume_count, discover_volumes

# ---------------------------
# Logging Configuration
# ---------------------------
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

# ---------------------------
# Utility Functions
# ---------------------------

def format_size(bytes_val: int) -> str:
    """Format bytes as human readable"""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_val < 1024.0:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024.0
    return f"{bytes_val:.1f} PB"

def parse_size(size_str: str) -> int:
    """Parse human-readable size"""
    size_str = size_str.strip().upper()

    # Order matters: longer suffixes first to avoid 'B' matching 'MB'
    multipliers = [
        ('TB', 1024**4),
        ('GB', 1024**3),
        ('MB', 1024**2),
        ('KB', 1024),
        ('B', 1),
    ]

    for suffix, multiplier in multipliers:
        if size_str.endswith(suffix):
            number = size_str[:-len(suffix)].strip()
            return int(float(number) * multiplier)

    return int(size_str)

def resolve_volumes(config: Config) -> List[Volume]:
    """Explicit roots when given, otherwise auto-detected disks"""
    if config.volume_paths:
        volumes = build_volume_table(config.volume_paths)
    else:
        volumes = discover_volumes(config.mount_root, config.volume_pattern)
    check_volume_count(volumes)
    return volumes

@contextmanager
def stop_on_signals(driver: CleanupDriver) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into a clean stop between reference files"""
    def handler(signum, frame):
        logger.warning(f"Received signal {signum}, finishing in-flight files...")
        driver.request_stop()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handler)
    try:
        yield
    finally:
        for signum, old_handler in previous.items():
            signal.signal(signum, old_handler)

# ---------------------------
# Reporting
# ---------------------------

def print_summary(stats: CleanupStats) -> None:
    """Print the trailing run summary"""
    print()
    print("=== SUMMARY ===")
    print(f"Files checked: {stats.files_checked}")
    print(f"Duplicate groups found: {stats.duplicate_groups}")
    if stats.unreadable_files:
        print(f"Unreadable files skipped: {stats.unreadable_files}")

    if stats.dry_run:
        print("Mode: DRY RUN (no files were deleted)")
    else:
        print(f"Files deleted: {stats.files_deleted}")
        if stats.deletion_failures:
            print(f"Deletion failures: {stats.deletion_failures}")
        print(f"Space reclaimed: {format_size(stats.bytes_reclaimed)}")
        print("Mode: DELETION (duplicates were removed, keeping files on disks with most free space)")

    if stats.interrupted:
        print("Run was interrupted before all files were checked")

# ---------------------------
# CLI Interface
# ---------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pathdedup",
        description="PathDedup - Path-Aware Cross-Volume Duplicate Cleanup",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Volumes
    parser.add_argument("--mount-root", default="/mnt", help="Directory holding the volume mounts")
    parser.add_argument("--pattern", default="disk[0-9]*", help="Glob matching volume directories")
    parser.add_argument(
        "--volumes",
        nargs="+",
        metavar="PATH",
        help="Explicit volume roots (first is the reference) instead of auto-detection"
    )

    # Mode
    parser.add_argument("--dry-run", action="store_true", help="Show what would be deleted without deleting")
    parser.add_argument(
        "--test",
        action="store_true",
        help=f"Process only the first {TEST_SAMPLE_LIMIT} files of the reference disk"
    )
    parser.add_argument("--sample-limit", type=int, help="Process at most this many reference files")

    # Performance
    parser.add_argument("--workers", type=int, help="Worker threads (default: auto)")
    parser.add_argument("--chunk-size", type=parse_size, default="1MB", help="Hash read chunk size")
    parser.add_argument("--progress-interval", type=int, default=500,
                        help="Log progress every N files (0 disables)")

    # Algorithm
    parser.add_argument(
        "--algorithm",
        choices=["md5", "sha1", "sha256", "xxhash"],
        default="md5",
        help="Hash algorithm"
    )
    parser.add_argument("--tie-break", choices=["first", "name"], default="first",
                        help="Survivor when free space is equal: first seen or lowest volume name")

    # Options
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Advanced
    parser.add_argument("--retry-attempts", type=int, default=2, help="Read attempts per file")
    parser.add_argument("--retry-backoff", type=float, default=0.2, help="Retry backoff")

    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    sample_limit = args.sample_limit
    if args.test and sample_limit is None:
        sample_limit = TEST_SAMPLE_LIMIT

    # Build configuration
    config = Config(
        mount_root=args.mount_root,
        volume_pattern=args.pattern,
        volume_paths=args.volumes or [],
        dry_run=args.dry_run,
        sample_limit=sample_limit,
        workers=args.workers or Config().workers,
        chunk_size=args.chunk_size,
        progress_interval=args.progress_interval,
        hash_algorithm=args.algorithm,
        retry_attempts=args.retry_attempts,
        retry_backoff=args.retry_backoff,
        tie_break=args.tie_break,
        quiet=args.quiet,
        verbose=args.verbose,
    )

    # Set logging level
    package_logger = logging.getLogger("pathdedup")
    if config.quiet:
        package_logger.setLevel(logging.WARNING)
    elif config.verbose:
        package_logger.setLevel(logging.DEBUG)
    else:
        package_logger.setLevel(logging.INFO)

    try:
        driver = CleanupDriver(config)
        volumes = resolve_volumes(config)
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        return 1

    reference, others = volumes[0], volumes[1:]

    if not config.quiet:
        print(f"PathDedup v{__version__}")
        print("=" * 70)
        if config.dry_run:
            print("Running in DRY RUN mode - no files will be deleted")
        if config.sample_limit:
            print(f"Running in TEST mode - processing max {config.sample_limit} files per disk")
        print(f"Found {len(volumes)} disks:")
        for volume in volumes:
            print(volume.root)
        print()

    try:
        with stop_on_signals(driver):
            stats = driver.run(reference, others)
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        return 1

    print_summary(stats)
    if stats.interrupted:
        return 130

    if not config.quiet:
        print("Fast path-aware scan completed!")
    return 0

if __name__ == "__main__":
    sys.exit(main())
