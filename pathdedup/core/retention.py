#!/usr/bin/env python3
"""
Survivor selection by live free space
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .grouper import DuplicateGroup
from .matcher import FileRecord
from .volumes import VolumeSpaceOracle

logger = logging.getLogger(__name__)


@dataclass
class RetentionDecision:
    """Which copy of a group stays and which copies go"""
    keep: FileRecord
    remove: List[FileRecord]
    free_space: Dict[str, int] = field(default_factory=dict)


class RetentionSelector:
    """Keep the copy on the volume with the most free space

    Free space is read from the oracle for every decision, so deletions made
    earlier in the run shift later decisions. Ties keep the first member
    encountered (``tie_break="first"``) or the lexically smallest volume name
    (``tie_break="name"``).
    """

    def __init__(self, space_oracle: VolumeSpaceOracle = None, tie_break: str = "first"):
        self.space_oracle = space_oracle or VolumeSpaceOracle()
        self.tie_break = tie_break

    def select(self, group: DuplicateGroup) -> RetentionDecision:
        free_space = {
            member.volume.name: self.space_oracle.free_space(member.volume)
            for member in group.members
        }

        if self.tie_break == "name":
            ranked = sorted(
                group.members,
                key=lambda m: (-free_space[m.volume.name], m.volume.name),
            )
        else:
            # sorted() is stable: equal free space keeps member order
            ranked = sorted(group.members, key=lambda m: -free_space[m.volume.name])

        decision = RetentionDecision(keep=ranked[0], remove=ranked[1:], free_space=free_space)
        logger.debug(
            f"Keeping {decision.keep.path} "
            f"({free_space[decision.keep.volume.name]:,} bytes free on {decision.keep.volume.name})"
        )
        return decision
