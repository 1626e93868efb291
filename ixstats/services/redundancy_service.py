from typing import List, Optional

from ixstats.core.logging import logger
from ixstats.services.models import Index


class RedundancyService:
    """
    Flags indexes whose query-serving capability is covered by a sibling index.

    The rule is a conservative prefix test: the leading field must match, the
    remaining fields only need to be present somewhere after the leading
    field of the covering index. An index that has been flagged can no longer
    cover another one, so every group of compatible indexes keeps at least
    one survivor.
    """

    def analyze(
        self,
        indexes: List[Index],
        shard_count: int = 0,
        ns: str = "",
        advisories: Optional[List[str]] = None,
    ) -> List[Index]:
        ordered = sorted(indexes, key=lambda o: o.effective_key)
        for index in ordered:
            index.is_dupped = False

        for index in ordered:
            if index.is_id_index or index.is_shard_key:
                continue
            index.is_dupped = self.is_covered(index, ordered)
            if len(index.usage) < shard_count:
                message = (
                    f"{ns} {{ {index.effective_key} }} has usage from "
                    f"{len(index.usage)} of {shard_count} shards"
                )
                logger.warning(message)
                if advisories is not None:
                    advisories.append(message)
        return ordered

    @staticmethod
    def is_covered(index: Index, others: List[Index]) -> bool:
        if not index.fields:
            return False
        trailing = index.fields[1:]
        for other in others:
            if other.is_dupped or not other.fields:
                continue
            if other.fields[0] != index.fields[0]:
                continue
            if other.key_string == index.key_string:
                continue
            if len(other.fields) < len(index.fields):
                continue
            if all(field in other.fields[1:] for field in trailing):
                return True
        return False
