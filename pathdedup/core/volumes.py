#!/usr/bin/env python3
"""
Volume discovery, enumeration and free-space queries

A volume is one independent mount (``/mnt/disk1``, ``/mnt/disk2``, ...)
holding a directory tree that mirrors the other volumes' layout.
"""

import glob
import logging
import os
import re
import shutil
from dataclasses import dataclass
from itertools import islice
from typing import Iterator, List, Optional, Sequence

from .config import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Volume:
    """A storage volume identified by name, rooted at ``root``"""
    name: str
    root: str

    @classmethod
    def from_root(cls, root: str) -> 'Volume':
        """Build a volume whose name is the last component of its root"""
        root = os.path.normpath(os.path.abspath(root))
        return cls(name=os.path.basename(root) or root, root=root)

    def relative_path(self, path: str) -> str:
        """Strip this volume's root from an absolute path on it"""
        return os.path.relpath(path, self.root)

    def path_for(self, relative_path: str) -> str:
        """Absolute path of ``relative_path`` on this volume"""
        return os.path.join(self.root, relative_path)


def natural_sort_key(text: str) -> List:
    """Sort key that orders disk2 before disk10 (like ``sort -V``)"""
    return [int(part) if part.isdigit() else part for part in re.split(r'(\d+)', text)]


def discover_volumes(mount_root: str = "/mnt", pattern: str = "disk[0-9]*") -> List[Volume]:
    """Find volume directories directly under ``mount_root`` matching ``pattern``"""
    candidates = [
        path for path in glob.glob(os.path.join(mount_root, pattern))
        if os.path.isdir(path)
    ]
    candidates.sort(key=lambda p: natural_sort_key(os.path.basename(p)))
    volumes = [Volume.from_root(path) for path in candidates]

    if not volumes:
        raise ConfigurationError(f"No {os.path.join(mount_root, pattern)} directories found!")

    logger.debug(f"Discovered {len(volumes)} volumes under {mount_root}")
    return volumes


def build_volume_table(roots: Sequence[str]) -> List[Volume]:
    """Turn explicit volume roots into volumes, dropping repeated roots and names"""
    volumes: List[Volume] = []
    seen_roots = set()
    seen_names = set()

    for root in roots:
        volume = Volume.from_root(root)
        if volume.root in seen_roots:
            logger.warning(f"Ignoring repeated volume root: {volume.root}")
            continue
        if volume.name in seen_names:
            raise ConfigurationError(
                f"Volume name {volume.name!r} is used by more than one root"
            )
        seen_roots.add(volume.root)
        seen_names.add(volume.name)
        volumes.append(volume)

    return volumes


def check_volume_count(volumes: Sequence[Volume]) -> None:
    """Raise when there is nothing to compare against"""
    if len(volumes) < 2:
        raise ConfigurationError("Need at least 2 disks to find duplicates!")


def iter_volume_files(volume: Volume, limit: Optional[int] = None) -> Iterator[str]:
    """Yield regular files under a volume root, optionally capped at ``limit``

    Symlinks are neither followed nor reported. Unreadable directories are
    skipped silently.
    """
    def walk() -> Iterator[str]:
        for root, dirs, files in os.walk(volume.root, followlinks=False):
            dirs.sort()
            for filename in sorted(files):
                path = os.path.join(root, filename)
                if os.path.islink(path) or not os.path.isfile(path):
                    continue
                yield path

    if limit is None:
        return walk()
    return islice(walk(), limit)


class VolumeSpaceOracle:
    """Free-space readings, queried from the filesystem on every call"""

    def free_space(self, volume: Volume) -> int:
        """Free bytes on ``volume`` right now, or 0 when the query fails"""
        try:
            return shutil.disk_usage(volume.root).free
        except OSError as e:
            logger.debug(f"Free space query failed for {volume.root}: {e}")
            return 0
