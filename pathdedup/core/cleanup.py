#!/usr/bin/env python3
"""
Cleanup driver: match -> fingerprint -> group -> decide -> delete

Reference-volume files are processed independently, optionally on a thread
pool. Matching, fingerprinting and grouping run concurrently; reporting,
the retention decision and the deletions for a group happen under one lock,
so each free-space reading sees every deletion already made in the run.
"""

import logging
import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from .config import Config, ConfigurationError
from .fingerprint import Fingerprinter
from .grouper import DuplicateGroup, DuplicateGrouper
from .matcher import PathMatcher
from .retention import RetentionDecision, RetentionSelector
from .volumes import Volume, VolumeSpaceOracle, check_volume_count, iter_volume_files

logger = logging.getLogger(__name__)


@dataclass
class CleanupStats:
    """Counters and outcomes of one cleanup run"""
    dry_run: bool = False

    # Counts
    files_checked: int = 0
    duplicate_groups: int = 0
    files_deleted: int = 0
    deletion_failures: int = 0
    unreadable_files: int = 0
    bytes_reclaimed: int = 0

    # Tracking
    reported: List[str] = field(default_factory=list)
    deleted_paths: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error_count: int = 0
    interrupted: bool = False

    # Performance
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def increment(self, counter: str, amount: int = 1) -> int:
        """Atomically add to a counter and return its new value"""
        with self._lock:
            value = getattr(self, counter) + amount
            setattr(self, counter, value)
            return value

    def record_report(self, line: str) -> None:
        with self._lock:
            self.duplicate_groups += 1
            self.reported.append(line)

    def record_deletion(self, path: str, size: int) -> None:
        with self._lock:
            self.files_deleted += 1
            self.bytes_reclaimed += size
            self.deleted_paths.append(path)

    def add_error(self, msg: str) -> None:
        """Add error message"""
        with self._lock:
            self.error_count += 1
            timestamp = datetime.now().strftime("%H:%M:%S")
            self.errors.append(f"[{timestamp}] {msg}")
            if len(self.errors) > 100:  # Keep last 100
                self.errors = self.errors[-100:]

    def finish(self) -> None:
        self.end_time = time.time()

    def get_duration(self) -> float:
        """Get elapsed time"""
        return (self.end_time or time.time()) - self.start_time


class CleanupDriver:
    """Find path-matched duplicates on a reference volume and clean them up"""

    def __init__(self, config: Config,
                 fingerprinter: Optional[Fingerprinter] = None,
                 space_oracle: Optional[VolumeSpaceOracle] = None,
                 report: Callable[[str], None] = print):
        config.validate()
        self.config = config
        self.fingerprinter = fingerprinter or Fingerprinter(
            config.hash_algorithm,
            config.chunk_size,
            config.retry_attempts,
            config.retry_backoff,
        )
        self.matcher = PathMatcher()
        self.grouper = DuplicateGrouper(self.fingerprinter)
        self.selector = RetentionSelector(space_oracle, config.tie_break)
        self.report = report

        self._act_lock = threading.Lock()
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Stop after the reference files already in flight are finished"""
        self._stop.set()

    def run(self, reference: Volume, other_volumes: Sequence[Volume]) -> CleanupStats:
        """Process every file of ``reference`` against ``other_volumes``"""
        if not os.path.isdir(reference.root):
            raise ConfigurationError(f"Reference directory does not exist: {reference.root}")
        check_volume_count([reference, *other_volumes])

        for volume in other_volumes:
            if not os.path.isdir(volume.root):
                logger.warning(f"Volume root is not a directory: {volume.root}")

        stats = CleanupStats(dry_run=self.config.dry_run)
        logger.info(f"Using {reference.root} as reference disk")
        logger.info(f"Comparing against: {' '.join(v.root for v in other_volumes)}")
        if self.config.sample_limit:
            logger.info(f"Sampling at most {self.config.sample_limit:,} files")

        files = iter_volume_files(reference, self.config.sample_limit)
        if self.config.workers == 1:
            self._run_sequential(files, reference, other_volumes, stats)
        else:
            self._run_parallel(files, reference, other_volumes, stats)

        stats.finish()
        if stats.interrupted:
            logger.warning(f"Stopped early after {stats.files_checked:,} files")
        return stats

    def _run_sequential(self, files: Iterable[str], reference: Volume,
                        other_volumes: Sequence[Volume], stats: CleanupStats) -> None:
        for path in files:
            if self._stop.is_set():
                stats.interrupted = True
                break
            self._process_file(path, reference, other_volumes, stats)

    def _run_parallel(self, files: Iterable[str], reference: Volume,
                      other_volumes: Sequence[Volume], stats: CleanupStats) -> None:
        window = self.config.workers * 4

        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            pending = set()
            for path in files:
                if self._stop.is_set():
                    stats.interrupted = True
                    break
                pending.add(executor.submit(self._process_file, path, reference, other_volumes, stats))

                if len(pending) >= window:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        future.result()

            done, _ = wait(pending)
            for future in done:
                future.result()

    def _process_file(self, path: str, reference: Volume,
                      other_volumes: Sequence[Volume], stats: CleanupStats) -> None:
        record = self.matcher.reference_record(path, reference)
        candidates = self.matcher.match(record, other_volumes)

        if len(candidates) > 1:
            groups = self.grouper.group(candidates)

            unreadable = sum(1 for c in candidates if c.unreadable)
            if unreadable:
                stats.increment('unreadable_files', unreadable)
                stats.add_error(f"{unreadable} unreadable copies of /{record.relative_path}")

            for group in groups:
                self._handle_group(group, stats)

        checked = stats.increment('files_checked')
        interval = self.config.progress_interval
        if interval and checked % interval == 0:
            logger.info(
                f"Progress: {checked:,} files checked, "
                f"{stats.duplicate_groups:,} duplicate groups found"
            )

    def _handle_group(self, group: DuplicateGroup, stats: CleanupStats) -> None:
        with self._act_lock:
            line = group.describe()
            stats.record_report(line)
            self.report(line)

            if self.config.dry_run:
                return

            decision = self.selector.select(group)
            self._delete_redundant(decision, group, stats)

    def _delete_redundant(self, decision: RetentionDecision, group: DuplicateGroup,
                          stats: CleanupStats) -> None:
        """Attempt every removal of the group; failures are only counted"""
        for record in decision.remove:
            if not os.path.isfile(decision.keep.path):
                self._deletion_failed(stats, f"Survivor {decision.keep.path} vanished; kept {record.path}")
                continue
            if not os.path.isfile(record.path):
                self._deletion_failed(stats, f"Already gone: {record.path}")
                continue

            try:
                os.remove(record.path)
            except OSError as e:
                self._deletion_failed(stats, f"Failed to delete {record.path}: {e}")
                continue

            stats.record_deletion(record.path, group.size)
            logger.debug(f"Deleted: {record.path} (kept {decision.keep.path})")

    @staticmethod
    def _deletion_failed(stats: CleanupStats, msg: str) -> None:
        stats.increment('deletion_failures')
        stats.add_error(msg)
        logger.debug(msg)
