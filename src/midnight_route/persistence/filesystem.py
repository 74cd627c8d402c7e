"""File-based persistence helpers for generated route outputs."""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from ..config import settings


class StagedWrites:
    """Files written to temporaries and moved into place together on commit."""

    def __init__(self) -> None:
        self._pending: list[tuple[Path, Path]] = []

    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        temp_path = Path(temp_name)
        self._pending.append((temp_path, path))
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        self.write_text(path, json.dumps(data, ensure_ascii=False, indent=indent))

    def commit(self) -> list[Path]:
        written: list[Path] = []
        for temp_path, target in self._pending:
            os.replace(temp_path, target)
            written.append(target)
        self._pending.clear()
        return written

    def discard(self) -> None:
        for temp_path, _ in self._pending:
            temp_path.unlink(missing_ok=True)
        self._pending.clear()


class FileStorage:
    """Thin wrapper around the data root for writing CSV and JSON outputs atomically."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, path: Path | str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    @contextmanager
    def staged(self) -> Iterator[StagedWrites]:
        """Stage writes; nothing reaches its final path unless the block completes."""

        batch = StagedWrites()
        try:
            yield batch
            batch.commit()
        finally:
            batch.discard()

    def write_json(self, path: Path | str, data: Any, *, indent: int = 2) -> Path:
        target = self.resolve(path)
        with self.staged() as batch:
            batch.write_json(target, data, indent=indent)
        return target

    def write_csv(self, path: Path | str, content: str) -> Path:
        target = self.resolve(path)
        with self.staged() as batch:
            batch.write_text(target, content)
        return target

    def read_text(self, path: Path | str) -> str:
        return self.resolve(path).read_text(encoding="utf-8")
