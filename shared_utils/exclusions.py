"""
Exclusion bookkeeping for the Boreal Growth Sensitivity Pipeline.

Rows, trees, groups and site-years dropped by any stage are recorded here
with the stage and reason so that a run can report exactly what was left out
of the final tables.

Author: Boreal Growth Team
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional

import pandas as pd

from .logging_utils import get_logger


@dataclass
class ExclusionRecord:
    """A single excluded entity."""
    stage: str
    entity: str
    reason: str


@dataclass
class ExclusionLog:
    """Collects exclusion records across pipeline stages."""
    records: List[ExclusionRecord] = field(default_factory=list)

    def add(self, stage: str, entity: str, reason: str) -> None:
        self.records.append(ExclusionRecord(stage=stage, entity=str(entity), reason=reason))

    def extend(self, stage: str, entities, reason: str) -> int:
        """Record several entities sharing one reason; returns how many were added."""
        count = 0
        for entity in entities:
            self.add(stage, entity, reason)
            count += 1
        return count

    def count(self, stage: Optional[str] = None) -> int:
        if stage is None:
            return len(self.records)
        return sum(1 for record in self.records if record.stage == stage)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [asdict(record) for record in self.records],
            columns=['stage', 'entity', 'reason']
        )

    def log_summary(self, component_name: str = 'exclusions') -> None:
        """Log exclusion counts per stage and reason."""
        logger = get_logger(component_name)
        if not self.records:
            logger.info("No exclusions recorded")
            return

        summary = self.to_frame().groupby(['stage', 'reason']).size()
        for (stage, reason), n in summary.items():
            logger.warning(f"Excluded {n} entities at stage '{stage}': {reason}")
