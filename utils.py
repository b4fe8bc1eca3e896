import hashlib
import json
import os
from pathlib import Path
from typing import Any, Callable, Hashable, Iterable, List, TypeVar, Union

p = Path(__file__).resolve()

T = TypeVar("T")


def load_env_vars(filepath=Path(".env").resolve()):
    try:
        with open(filepath) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())
    except FileNotFoundError:
        pass


def read_json_file(json_path: Union[str, Path], encoding: str = "utf-8") -> Any:
    """
    Read and parse a JSON file.

    Raises:
        FileNotFoundError: if the file doesn't exist
        ValueError: if the JSON is invalid
    """
    path = Path(json_path)

    try:
        with path.open("r", encoding=encoding) as f:
            return json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"JSON file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path} (line {e.lineno}, col {e.colno}): {e.msg}") from e


def write_json_file(json_path: Union[str, Path], data: Any) -> Path:
    path = Path(json_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def hash_file_sha256(path: Union[str, Path]) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def dedupe(items: Iterable[T], key: Callable[[T], Hashable] = lambda x: x) -> List[T]:
    """Order-preserving de-duplication."""
    seen = set()
    out: List[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out


def union_ordered(existing: List[T], incoming: Iterable[T]) -> List[T]:
    """Append the items of `incoming` missing from `existing`, in order."""
    merged = list(existing)
    present = set(merged)
    for item in incoming:
        if item not in present:
            present.add(item)
            merged.append(item)
    return merged
