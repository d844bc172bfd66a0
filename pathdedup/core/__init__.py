"""
PathDedup Core Modules

Volume handling, fingerprinting, path matching, grouping, retention
policy and the cleanup driver that ties them together.
"""

from . import volumes
from . import config
from . import fingerprint
from . import matcher
from . import grouper
from . import retention
from . import cleanup

__all__ = [
    "volumes",
    "config",
    "fingerprint",
    "matcher",
    "grouper",
    "retention",
    "cleanup",
]
