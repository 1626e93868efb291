from typing import List, Optional

from ixstats.core.config import settings
from ixstats.services.models import Collection, Index, IndexSnapshot

CODE_DEFAULT = "\x1b[0m"
CODE_RED = "\x1b[31;1m"
CODE_BLUE = "\x1b[34;1m"


class ReportService:
    """
    Renders an inventory as annotated text, one block per collection.

    Glyphs: two spaces for the _id index, ``*`` shard key, ``x`` redundant,
    ``?`` never used, blank otherwise. Colour is an explicit option.
    """

    def __init__(self, use_color: Optional[bool] = None):
        self.use_color = (not settings.NO_COLOR) if use_color is None else use_color

    def _paint(self, code: str, text: str) -> str:
        if not self.use_color:
            return text
        return f"{code}{text}{CODE_DEFAULT}"

    def render_index(self, index: Index) -> str:
        if index.is_id_index:
            line = self._paint(CODE_DEFAULT, f"  {index.key_string}")
        elif index.is_shard_key:
            line = self._paint(CODE_DEFAULT, f"* {index.key_string}")
        elif index.is_dupped:
            line = self._paint(CODE_RED, f"x {index.key_string}")
        elif index.total_ops == 0:
            line = self._paint(CODE_BLUE, f"? {index.key_string}")
        else:
            line = f"  {index.key_string}"

        lines = [line]
        for usage in index.usage:
            since = usage.since.isoformat() if usage.since else ""
            lines.append(f"\thost: {usage.host}, ops: {usage.ops}, since: {since}")
        return "\n".join(lines)

    def render_collection(self, coll: Collection) -> str:
        indexes = sorted(coll.indexes, key=lambda o: o.effective_key)
        body = "\n".join(self.render_index(index) for index in indexes)
        return f"\n{coll.ns}:\n{body}\n"

    def render(self, snapshot: IndexSnapshot) -> List[str]:
        return [self.render_collection(coll) for _, coll in snapshot.collections()]

    def print(self, snapshot: IndexSnapshot):
        for block in self.render(snapshot):
            print(block)
