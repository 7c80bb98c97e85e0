from __future__ import annotations

import os
import tempfile
from pathlib import Path


def ensure_under_root(root: Path, name: str) -> Path:
    """Join ``name`` onto ``root`` and refuse results that escape ``root``.

    Raises:
        ValueError: if ``name`` is absolute, climbs out of ``root`` or
            names ``root`` itself. The message carries a short reason tag.
    """
    normalized = os.path.normpath(name)

    if os.path.isabs(normalized):
        raise ValueError(f"absolute_path:{name}")

    root_resolved = root.resolve()
    try:
        final_path = (root_resolved / normalized).resolve()
    except (OSError, RuntimeError) as e:
        raise ValueError(f"path_resolution_error:{name}:{e}") from e

    try:
        final_path.relative_to(root_resolved)
    except ValueError as e:
        raise ValueError(f"escapes_dest:{name}") from e
    if final_path == root_resolved:
        raise ValueError(f"is_dest_dir:{name!r}")
    return final_path


def write_file(path: Path, data: bytes) -> None:
    """Write bytes atomically through a uniquely named temporary sibling.

    The temporary name is hidden and unique per call, so it never collides
    with another output file or with a concurrent write of the same path.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
