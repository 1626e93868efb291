"""
Index inventory data model.

The model mirrors the snapshot wire format: aliases are the field names
stored in the BSON document, attributes are the Python names. Index options
that the server omits stay ``None`` and are dropped again on write, so an
explicit ``False``/``0`` never collapses into "unset".
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

ID_KEY_STRING = "{ _id: 1 }"


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Accesses(_Document):
    ops: int = 0
    since: Optional[datetime] = None


class IndexUsage(_Document):
    """One $indexStats row: usage of an index on one host/shard."""

    name: str = ""
    host: str = ""
    shard: Optional[str] = None
    accesses: Accesses = Field(default_factory=Accesses)

    @property
    def ops(self) -> int:
        return self.accesses.ops

    @property
    def since(self) -> Optional[datetime]:
        return self.accesses.since


class Index(_Document):
    # Index specification as returned by listIndexes
    name: str
    key: Dict[str, Any]
    version: Optional[int] = Field(default=None, alias="v")
    unique: Optional[bool] = None
    sparse: Optional[bool] = None
    background: Optional[bool] = None
    expire_after_seconds: Optional[int] = Field(default=None, alias="expireAfterSeconds")
    partial_filter_expression: Optional[Dict[str, Any]] = Field(
        default=None, alias="partialFilterExpression"
    )
    collation: Optional[Dict[str, Any]] = None

    # Derived and annotation fields
    fields: List[str] = Field(default_factory=list)
    key_string: str = Field(default="", alias="keyString")
    effective_key: str = Field(default="", alias="effectiveKey")
    is_shard_key: bool = Field(default=False, alias="isShardkey")
    is_dupped: bool = Field(default=False, alias="isDupped")
    total_ops: int = Field(default=0, alias="totalOps")
    usage: List[IndexUsage] = Field(default_factory=list)

    @property
    def is_id_index(self) -> bool:
        return self.key_string == ID_KEY_STRING


class Collection(_Document):
    ns: str = Field(alias="NS")
    name: str
    indexes: List[Index] = Field(default_factory=list)


class Database(_Document):
    name: str
    collections: List[Collection] = Field(default_factory=list)


class Provenance(_Document):
    """Who captured the snapshot, from where, with which parameters."""

    version: str = ""
    hostname: str = ""
    params: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    ended_at: Optional[datetime] = Field(default=None, alias="endedAt")
    logs: List[str] = Field(default_factory=list)


class IndexSnapshot(_Document):
    databases: List[Database] = Field(default_factory=list)
    provenance: Provenance = Field(default_factory=Provenance, alias="keyhole")

    def collections(self):
        for database in self.databases:
            for collection in database.collections:
                yield database, collection
