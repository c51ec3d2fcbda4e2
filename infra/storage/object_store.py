import os
from pathlib import Path
from typing import Optional

from domain.errors import StorageError


class LocalObjectStore:
    """Directory-backed stand-in for the binary object bucket.

    Keys are relative POSIX paths such as ``<user_id>/<ts>-resume.pdf``.
    """

    def __init__(self, root: str):
        self._root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise StorageError(f"invalid storage key: {key!r}")
        return path

    def put(self, key: str, data: bytes) -> str:
        path = self._path(key)
        try:
            os.makedirs(path.parent, exist_ok=True)
            tmp = path.with_name(path.name + ".part")
            with open(tmp, "wb") as out:
                out.write(data)
            # readers must never observe a half-written artifact
            os.replace(tmp, path)
        except OSError as exc:
            raise StorageError(f"upload failed: {exc}") from exc
        return key

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def path(self, key: str) -> str:
        return str(self._path(key))

    def read_text(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="replace")
