class IndexStatsError(Exception):
    """Base class for index inventory failures."""


class UnsupportedFileTypeError(IndexStatsError, ValueError):
    def __init__(self, filename: str):
        super().__init__(f"unsupported file type: {filename}")
        self.filename = filename


class SnapshotDecodeError(IndexStatsError):
    """The snapshot file exists but its payload could not be decoded."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"cannot decode snapshot {filename}: {reason}")
        self.filename = filename


class CollectionError(IndexStatsError):
    """A database or collection could not be enumerated; the inventory is incomplete."""

    def __init__(self, namespace: str, reason: str):
        super().__init__(f"failed to collect {namespace}: {reason}")
        self.namespace = namespace
