# logic_engine/adapters/persistence.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Protocol, Tuple, TypeVar, Union

from pydantic import BaseModel

from logic_engine.errors import LedgerFormatError

JsonObj = Dict[str, Any]
PathLike = Union[str, Path]
T = TypeVar("T")


class FileSystem(Protocol):
    """Filesystem capability used by the logic-ledger writer (UTF-8 text only)."""

    def read_text(self, path: Path) -> str:
        """Return the file contents; raise FileNotFoundError if absent."""
        ...

    def write_text(self, path: Path, data: str) -> None:
        ...

    def mkdir(self, path: Path) -> None:
        """Create the directory and its parents; no error if it exists."""
        ...


class LocalFileSystem:
    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, data: str) -> None:
        path.write_text(data, encoding="utf-8")

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)


def _to_jsonable(x: Any) -> Any:
    if x is None:
        return None
    if isinstance(x, BaseModel):
        return x.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(x, dict):
        return {str(k): _to_jsonable(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_to_jsonable(v) for v in x]
    return x


def dumps_json(record: Any) -> str:
    return json.dumps(_to_jsonable(record), ensure_ascii=False, indent=2)


def read_json(path: PathLike, fallback: T, *, fs: FileSystem | None = None) -> Union[JsonObj, T]:
    """
    Read a JSON object file. A missing file yields `fallback`; any other I/O
    error propagates, and a file that is not a JSON object is a format error.
    """
    p = Path(path)
    try:
        text = (fs or LocalFileSystem()).read_text(p)
    except FileNotFoundError:
        return fallback

    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LedgerFormatError(f"{p}: invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(obj, dict):
        raise LedgerFormatError(f"{p}: expected a JSON object, got {type(obj).__name__}")
    return obj


def write_json(path: PathLike, record: Any, *, fs: FileSystem | None = None) -> None:
    p = Path(path)
    filesystem = fs or LocalFileSystem()
    filesystem.mkdir(p.parent)
    filesystem.write_text(p, dumps_json(record))


def append_jsonl(path: PathLike, record: Any) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    # enforce "one JSON object per line"
    line = json.dumps(_to_jsonable(record), ensure_ascii=False)
    with p.open("a", encoding="utf-8") as f:
        f.write(line + "\n")


def read_jsonl(path: PathLike) -> Iterator[Tuple[JsonObj, JsonObj]]:
    """
    Yields (meta, obj) for each JSON object line.
    - meta includes line number and source path.
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            s = line.strip()
            if not s:
                continue
            obj = json.loads(s)
            if not isinstance(obj, dict):
                raise LedgerFormatError(f"Expected JSON object on line {lineno}, got {type(obj).__name__}")
            meta: JsonObj = {"path": str(p), "lineno": lineno}
            yield meta, obj
