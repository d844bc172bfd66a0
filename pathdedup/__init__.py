"""
PathDedup - Path-Aware Cross-Volume Duplicate Cleanup

Finds files duplicated at the same relative path across independent storage
volumes (e.g. the data disks of an Unraid array) and removes the redundant
copies, keeping the one on the volume with the most free space.
"""

__version__ = "1.0.0"
__author__ = "PathDedup Team"
__email__ = "info@pathdedup.dev"
__license__ = "MIT"

from .core import cleanup, config, fingerprint, grouper, matcher, retention, volumes

__all__ = [
    "cleanup",
    "config",
    "fingerprint",
    "grouper",
    "matcher",
    "retention",
    "volumes",
]
