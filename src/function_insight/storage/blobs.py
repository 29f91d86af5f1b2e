"""Content-addressed blob store for per-analysis artifacts.

Layout::

    <store_dir>/blobs/{repositoryId}/{artifactType}/{functionKey}/{sha256}

Path segments are percent-encoded, so a function key such as
``src/app.py#Service.run`` becomes a single directory name. Writing the same
content twice is a no-op overwrite.
"""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Union
from urllib.parse import quote, unquote

from ..exceptions import CacheError
from ..logging_config import get_logger
from .database import ensure_store_dir

logger = get_logger(__name__)

DIFFS = "diffs"
CALLGRAPHS = "callgraphs"
ARTIFACT_TYPES = (DIFFS, CALLGRAPHS)


def _segment(value: str) -> str:
    return quote(value, safe="")


class BlobStore:
    """Write/read artifacts by hierarchical content-addressed key."""

    def __init__(self, store_dir: Path):
        self.store_dir = Path(store_dir)
        self.root = self.store_dir / "blobs"

    def key_for(self, repository_id: str, artifact_type: str, function_key: str, digest: str) -> str:
        return "/".join(
            [_segment(repository_id), artifact_type, _segment(function_key), digest]
        )

    def put(
        self,
        repository_id: str,
        artifact_type: str,
        function_key: str,
        content: Union[str, bytes],
    ) -> str:
        """Store ``content`` and return its key.

        Raises:
            ValueError: On an unknown artifact type
            CacheError: If the blob cannot be written
        """
        if artifact_type not in ARTIFACT_TYPES:
            raise ValueError(f"Unknown artifact type: {artifact_type}")
        data = content.encode("utf-8") if isinstance(content, str) else content
        digest = hashlib.sha256(data).hexdigest()
        key = self.key_for(repository_id, artifact_type, function_key, digest)
        path = self.root / key

        if path.exists():
            return key
        try:
            ensure_store_dir(self.store_dir)
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except OSError as e:
            raise CacheError("blob write", str(e))
        logger.debug(f"Stored blob {key}")
        return key

    def get(self, key: str) -> bytes:
        """Read a blob by key.

        Raises:
            KeyError: If no blob exists under ``key``
        """
        path = self.root / key
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise KeyError(key)

    def exists(self, key: str) -> bool:
        return (self.root / key).is_file()

    def list_keys(self, repository_id: str, artifact_type: str, function_key: str) -> list[str]:
        """Keys of every blob stored for one function and artifact type."""
        directory = self.root / _segment(repository_id) / artifact_type / _segment(function_key)
        if not directory.is_dir():
            return []
        prefix = self.key_for(repository_id, artifact_type, function_key, "")
        return sorted(prefix + p.name for p in directory.iterdir() if not p.name.startswith("."))

    @staticmethod
    def describe(key: str) -> dict[str, str]:
        """Split a key back into its decoded components."""
        repository_id, artifact_type, function_key, digest = key.split("/")
        return {
            "repository_id": unquote(repository_id),
            "artifact_type": artifact_type,
            "function_key": unquote(function_key),
            "digest": digest,
        }

    def stats(self) -> dict:
        count = 0
        volume = 0
        if self.root.is_dir():
            for path in self.root.rglob("*"):
                if path.is_file():
                    count += 1
                    volume += path.stat().st_size
        return {"directory": str(self.root), "blobs": count, "volume": volume}

    def clear(self) -> int:
        """Remove every blob. Returns the number removed."""
        removed = 0
        if not self.root.is_dir():
            return 0
        for path in sorted(self.root.rglob("*"), reverse=True):
            if path.is_file():
                path.unlink()
                removed += 1
            elif path.is_dir():
                path.rmdir()
        logger.info("Removed %d blobs", removed)
        return removed
