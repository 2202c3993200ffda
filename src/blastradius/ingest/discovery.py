"""Source file discovery.

Walks the source root with directory pruning (vendored code, VCS metadata
and fixtures never contribute facts) and returns repo-relative paths in a
stable order so chunking is deterministic for a given tree.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path

from blastradius.config.models import IngestionConfig
from blastradius.core.errors import IngestionError


def discover_source_files(root: Path, config: IngestionConfig) -> list[Path]:
    """Repo-relative paths of every analyzable file under ``root``.

    Raises:
        IngestionError: If ``root`` is not a directory.
    """
    if not root.is_dir():
        raise IngestionError.source_not_found(str(root))

    excluded = set(config.exclude_dirs)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in-place: remove dirs we should skip
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in filenames:
            if any(fnmatch.fnmatch(filename, pattern) for pattern in config.file_patterns):
                found.append((Path(dirpath) / filename).relative_to(root))
    return sorted(found, key=lambda p: p.as_posix())


def partition(items: list[Path], chunks: int) -> list[list[Path]]:
    """Split ``items`` into at most ``chunks`` near-equal, non-empty chunks."""
    count = max(1, min(chunks, len(items)))
    return [items[i::count] for i in range(count) if items[i::count]]
