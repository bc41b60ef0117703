"""Bundle several outputs into one zip archive held in memory."""

from __future__ import annotations

import zipfile
from io import BytesIO


class ArchivePacker:
    """Collect named entries, then finalize them into zip bytes."""

    def __init__(self) -> None:
        self._buffer = BytesIO()
        self._archive = zipfile.ZipFile(self._buffer, "w", compression=zipfile.ZIP_DEFLATED)
        self._names: set[str] = set()

    def add(self, name: str, data: bytes) -> None:
        if self._archive is None:
            raise ValueError("Archive already finalized")
        if name in self._names:
            raise ValueError(f"Duplicate archive entry: {name}")
        self._names.add(name)
        self._archive.writestr(name, data)

    def __len__(self) -> int:
        return len(self._names)

    def finalize(self) -> bytes:
        if self._archive is not None:
            self._archive.close()
            self._archive = None
        return self._buffer.getvalue()
