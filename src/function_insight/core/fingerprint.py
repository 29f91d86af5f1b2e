"""Repository identity and function fingerprints.

Neither function runs an analysis stage, so the cache check that depends on
them stays a hard short-circuit.
"""

import hashlib
from pathlib import Path
from typing import Optional

from ..exceptions import AnalysisUnavailableError


def repository_id(repository_root: Path) -> str:
    """``<dirname>-<8 hex chars of the resolved path's hash>``."""
    resolved = Path(repository_root).resolve()
    digest = hashlib.sha256(str(resolved).encode("utf-8")).hexdigest()[:8]
    return f"{resolved.name or 'root'}-{digest}"


def compute_fingerprint(
    repository_root: Path, file_path: str, commit_hash: Optional[str] = None
) -> str:
    """Fingerprint of the analyzed source.

    ``commit:<hash>`` when a commit is given, otherwise
    ``content:<sha256 of the file bytes>``.

    Raises:
        AnalysisUnavailableError: If the target file cannot be read
    """
    if commit_hash:
        return f"commit:{commit_hash}"
    target = Path(repository_root) / file_path
    try:
        data = target.read_bytes()
    except OSError as e:
        raise AnalysisUnavailableError(f"cannot read {file_path}", e) from e
    return f"content:{hashlib.sha256(data).hexdigest()}"
