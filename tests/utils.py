import os
from typing import Dict, List, Optional

from pathdedup.core.fingerprint import Fingerprinter
from pathdedup.core.volumes import Volume

MB = 1024 * 1024


def write_file(root: str, relative_path: str, data: bytes) -> str:
    """Writes `data` to `root/relative_path`, creating parent dirs, and returns the path."""
    path = os.path.join(root, relative_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
    return path


def write_sparse(path: str, size: int, head: bytes = b"", middle: bytes = b"", tail: bytes = b"") -> str:
    """Creates a sparse file of `size` bytes with optional data at the start, middle and end."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
        if head:
            f.seek(0)
            f.write(head)
        if middle:
            f.seek(size // 2)
            f.write(middle)
        if tail:
            f.seek(size - len(tail))
            f.write(tail)
    return path


def make_volumes(base: str, *names: str) -> List[Volume]:
    """Creates one empty volume directory per name under `base`."""
    volumes = []
    for name in names:
        root = os.path.join(base, name)
        os.makedirs(root, exist_ok=True)
        volumes.append(Volume.from_root(root))
    return volumes


class FakeSpaceOracle:
    """Free space from a dict, recording every query."""

    def __init__(self, free: Dict[str, int]):
        self.free = dict(free)
        self.queries: List[str] = []

    def free_space(self, volume: Volume) -> int:
        self.queries.append(volume.name)
        return self.free.get(volume.name, 0)


class CountingFingerprinter(Fingerprinter):
    """Records fingerprinted paths; paths in `fail` come back unreadable."""

    def __init__(self, fail: Optional[List[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.calls: List[str] = []
        self.fail = set(fail or [])

    def fingerprint(self, path, size=None):
        self.calls.append(path)
        if path in self.fail:
            return None
        return super().fingerprint(path, size)
