#!/usr/bin/env python3
"""
Path-aware candidate matching

Only files that exist at the same relative path on at least two volumes can
be cross-volume duplicates, so the matcher is a cheap existence check that
decides which files are worth fingerprinting at all.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .fingerprint import Fingerprint
from .volumes import Volume

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(eq=False)
class FileRecord:
    """A file on one volume; size and fingerprint are read at most once"""
    path: str
    volume: Volume
    relative_path: str
    _size: Optional[int] = field(default=None, repr=False)
    _fingerprint: object = field(default=_UNSET, repr=False)

    @property
    def size(self) -> int:
        """Byte size; a failed stat counts as 0"""
        if self._size is None:
            try:
                self._size = os.stat(self.path).st_size
            except OSError as e:
                logger.debug(f"Stat failed for {self.path}: {e}")
                self._size = 0
        return self._size

    @property
    def fingerprinted(self) -> bool:
        return self._fingerprint is not _UNSET

    @property
    def fingerprint(self) -> Optional[Fingerprint]:
        """Fingerprint once computed; None if unreadable or not yet computed"""
        if self._fingerprint is _UNSET:
            return None
        return self._fingerprint

    @property
    def unreadable(self) -> bool:
        return self.fingerprinted and self._fingerprint is None

    def ensure_fingerprint(self, fingerprinter) -> Optional[Fingerprint]:
        """Compute the fingerprint on first use and remember the outcome"""
        if self._fingerprint is _UNSET:
            self._fingerprint = fingerprinter.fingerprint(self.path)
        return self._fingerprint


class PathMatcher:
    """Build candidate sets by relative-path lookup on the other volumes"""

    def reference_record(self, path: str, volume: Volume) -> FileRecord:
        """Wrap a file found while enumerating the reference volume"""
        return FileRecord(path=path, volume=volume, relative_path=volume.relative_path(path))

    def match(self, reference: FileRecord, other_volumes: Sequence[Volume]) -> List[FileRecord]:
        """Return the candidate set for ``reference``, reference first

        At most one record is taken per volume. Symlinks are never candidates,
        and a candidate that is the very same file as an accepted member
        (aliased mounts, hard links) is skipped.
        """
        candidates = [reference]
        seen_volumes = {reference.volume.name}

        for volume in other_volumes:
            if volume.name in seen_volumes:
                continue

            candidate_path = volume.path_for(reference.relative_path)
            if os.path.islink(candidate_path) or not os.path.isfile(candidate_path):
                continue

            alias = self._alias_of(candidate_path, candidates)
            if alias:
                logger.debug(f"Skipping alias of {alias}: {candidate_path}")
                continue

            seen_volumes.add(volume.name)
            candidates.append(FileRecord(
                path=candidate_path,
                volume=volume,
                relative_path=reference.relative_path,
            ))

        return candidates

    @staticmethod
    def _alias_of(path: str, members: Sequence[FileRecord]) -> Optional[str]:
        """Path of the member that ``path`` resolves to, if any

        A comparison that fails counts as an alias; the candidate is dropped.
        """
        for member in members:
            try:
                if os.path.samefile(path, member.path):
                    return member.path
            except OSError as e:
                logger.debug(f"Could not compare {path} to {member.path}: {e}")
                return member.path
        return None
