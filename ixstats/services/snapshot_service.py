import gzip
import os
import zlib
from typing import Optional

import bson
from bson import json_util
from bson.codec_options import CodecOptions
from bson.errors import BSONError
from pydantic import ValidationError

from ixstats.core.config import settings
from ixstats.core.errors import SnapshotDecodeError, UnsupportedFileTypeError
from ixstats.core.logging import logger
from ixstats.services.models import IndexSnapshot

INDEX_SUFFIX = "-index.bson.gz"
STATS_SUFFIX = "-stats.bson.gz"
JSON_SUFFIX = "-index.json"

CODEC_OPTIONS = CodecOptions(tz_aware=True)
JSON_OPTIONS = json_util.CANONICAL_JSON_OPTIONS


def filename_for(hostname: str, suffix: str = INDEX_SUFFIX) -> str:
    return hostname.replace(":", "_") + suffix


class SnapshotService:
    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = output_dir or settings.OUTPUT_DIR

    def _output_path(self, snapshot: IndexSnapshot, suffix: str) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        hostname = snapshot.provenance.hostname or "localhost"
        return os.path.join(self.output_dir, filename_for(hostname, suffix))

    @staticmethod
    def encode(snapshot: IndexSnapshot) -> bytes:
        return gzip.compress(bson.encode(snapshot.to_document()))

    @staticmethod
    def decode(data: bytes, filename: str = "<bytes>") -> IndexSnapshot:
        try:
            document = bson.decode(gzip.decompress(data), codec_options=CODEC_OPTIONS)
            return IndexSnapshot.model_validate(document)
        except (OSError, EOFError, zlib.error, BSONError, ValidationError) as e:
            raise SnapshotDecodeError(filename, str(e)) from e

    def save(self, snapshot: IndexSnapshot) -> str:
        """Write the snapshot as gzipped BSON and return the file path."""
        path = self._output_path(snapshot, INDEX_SUFFIX)
        with open(path, "wb") as fd:
            fd.write(self.encode(snapshot))
        logger.info("Index stats is written to %s", path)
        return path

    def save_json(self, snapshot: IndexSnapshot) -> str:
        """Write the snapshot as Extended JSON for manual inspection. Not loadable."""
        path = self._output_path(snapshot, JSON_SUFFIX)
        with open(path, "w", encoding="utf-8") as fd:
            fd.write(json_util.dumps(snapshot.to_document(), json_options=JSON_OPTIONS, indent=2))
        logger.info("json data written to %s", path)
        return path

    def load(self, filename: str) -> IndexSnapshot:
        if not (filename.endswith(INDEX_SUFFIX) or filename.endswith(STATS_SUFFIX)):
            raise UnsupportedFileTypeError(filename)
        with open(filename, "rb") as fd:
            data = fd.read()
        snapshot = self.decode(data, filename)
        logger.info("Loaded %s databases from %s", len(snapshot.databases), filename)
        return snapshot
