#!/usr/bin/env python3
"""
Fingerprint grouping of path-matched candidates
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .fingerprint import Fingerprint, Fingerprinter
from .matcher import FileRecord

logger = logging.getLogger(__name__)


def join_names(names: Sequence[str]) -> str:
    """Human-readable conjunction: "a", "a and b", "a, b and c" """
    names = list(names)
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


@dataclass
class DuplicateGroup:
    """Path-matched files on different volumes sharing one fingerprint"""
    relative_path: str
    size: int
    fingerprint: Fingerprint
    members: List[FileRecord]

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def volume_names(self) -> List[str]:
        """Distinct volume names in member order"""
        names: List[str] = []
        for member in self.members:
            if member.volume.name not in names:
                names.append(member.volume.name)
        return names

    @property
    def wasted_space(self) -> int:
        return self.size * (self.count - 1)

    def describe(self) -> str:
        """The one-line report for this group"""
        return (
            f"Duplicate found: /{self.relative_path} (size={self.size}) "
            f"exists on {join_names(self.volume_names)}"
        )


class DuplicateGrouper:
    """Partition a candidate set into duplicate groups"""

    def __init__(self, fingerprinter: Fingerprinter):
        self.fingerprinter = fingerprinter

    def group(self, candidates: Sequence[FileRecord]) -> List[DuplicateGroup]:
        """Fingerprint the candidates and return groups spanning 2+ volumes

        Candidate sets with fewer than two members are returned empty without
        touching the files. Unreadable members are left out.
        """
        if len(candidates) < 2:
            return []

        buckets: Dict[Fingerprint, List[FileRecord]] = {}
        for record in candidates:
            fingerprint = record.ensure_fingerprint(self.fingerprinter)
            if fingerprint is None:
                continue
            buckets.setdefault(fingerprint, []).append(record)

        groups = []
        for fingerprint, members in buckets.items():
            if len(members) < 2:
                continue
            if len({m.volume.name for m in members}) < 2:
                logger.debug(f"Discarding single-volume bucket for {members[0].relative_path}")
                continue

            logger.debug(f"Group {fingerprint}: {[m.path for m in members]}")
            groups.append(DuplicateGroup(
                relative_path=members[0].relative_path,
                size=members[0].size,
                fingerprint=fingerprint,
                members=members,
            ))

        return groups
