"""Content-hash revisioning for Revsite assets.

Compiled assets are written under a name that embeds a hash of their
contents (``main.css`` becomes ``main-1a2b3c4d5e.css``) so that changed
content always gets a new URL. The logical to deployed mapping for a
category is recorded in a revision manifest next to the files.

Functions:
    content_hash: Short hex digest of file contents.
    revisioned_name: Hashed filename for a logical name.
    write_revisioned: Write a hashed file into a directory.

Classes:
    RevisionManifest: The ``rev-manifest.json`` mapping.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

HASH_LENGTH = 10


def content_hash(data: bytes, length: int = HASH_LENGTH) -> str:
    """Return the first ``length`` hex characters of the MD5 of ``data``."""
    return hashlib.md5(data).hexdigest()[:length]


def revisioned_name(logical_name: str, data: bytes) -> str:
    """Return the deployed filename for ``logical_name`` with ``data``.

    Examples:
        >>> revisioned_name("main.css", b"test")
        'main-098f6bcd46.css'
    """
    path = Path(logical_name)
    stem = path.name[: -len(path.suffix)] if path.suffix else path.name
    hashed = f"{stem}-{content_hash(data)}{path.suffix}"
    return (path.parent / hashed).as_posix() if path.parent != Path(".") else hashed


def write_revisioned(dest_dir: Path, logical_name: str, data: bytes) -> str:
    """Write ``data`` under its revisioned name and return that name."""
    deployed = revisioned_name(logical_name, data)
    target = dest_dir / deployed
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return deployed


class RevisionManifest:
    """Mapping of logical asset filenames to deployed filenames."""

    def __init__(self, entries: dict[str, str] | None = None):
        self.entries: dict[str, str] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> RevisionManifest:
        """Load a manifest, treating a missing or malformed file as empty.

        The pipeline only uses this to find stale revisions, so a broken
        previous manifest is not an error here.
        """
        if not path.exists():
            return cls()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return cls()
        if not isinstance(payload, dict):
            return cls()
        return cls({str(k): str(v) for k, v in payload.items()})

    def add(self, logical_name: str, deployed_name: str) -> None:
        self.entries[logical_name] = deployed_name

    def deployed_names(self) -> set[str]:
        return set(self.entries.values())

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.entries, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"RevisionManifest({len(self.entries)} entries)"
