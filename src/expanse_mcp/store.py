"""Read-modify-write access to JSON documents on disk.

Nothing is cached between calls: every read goes back to the file. Reading a
scene document also rewrites it when repair changes its serialized form.
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .repair import is_scene_document, repair
from .shared.errors import InvalidJsonError
from .shared.logging import get_logger

logger = get_logger(__name__)

SCENE_FILENAMES = (".expanse.json", "expanse.json")
SCENE_LOCATIONS = (".expanse.json", os.path.join("src", ".expanse.json"))
DEFAULT_SCENE_LOCATION = os.path.join("src", ".expanse.json")

PathArg = Union[str, "os.PathLike[str]"]


@dataclass
class DocumentRead:
    data: Any
    raw_text: str
    path: Path
    repaired: bool = False


def is_scene_path(path: PathArg) -> bool:
    return Path(path).name in SCENE_FILENAMES


def serialize(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def loads_loose(text: str, path: PathArg = "<memory>") -> Any:
    """Parse JSON, unwrapping one level of string double-encoding."""
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise InvalidJsonError(os.fspath(path), str(exc)) from exc
    if isinstance(data, str):
        try:
            return json.loads(data)
        except ValueError:
            return data
    return data


def read_document(path: PathArg) -> DocumentRead:
    target = Path(path)
    raw_text = target.read_text(encoding="utf-8")
    data = loads_loose(raw_text, target)
    result = DocumentRead(data=data, raw_text=raw_text, path=target)
    if is_scene_path(target) and is_scene_document(data):
        repair(data)
        normalized = serialize(data)
        if normalized != raw_text:
            target.write_text(normalized, encoding="utf-8")
            result.repaired = True
            logger.info("Normalized scene document on read: %s", target)
    return result


def write_document(path: PathArg, data: Any, *, repair_scene: bool = True) -> Any:
    """Serialize a deep copy of ``data`` to ``path``; returns what was written."""
    target = Path(path)
    payload = copy.deepcopy(data)
    if repair_scene and is_scene_document(payload):
        repair(payload)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(serialize(payload), encoding="utf-8")
    return payload


# ---------------------------------------------------------------------------
# Scene document location
# ---------------------------------------------------------------------------

def scene_template() -> dict:
    return {
        "entrySpaceId": "default-space",
        "activeCamera": "camera",
        "spaces": {
            "default-space": {
                "id": "default-space",
                "name": "Default Space",
                "activeCamera": "camera",
                "children": [],
            }
        },
        "objects": {
            "camera": {
                "id": "camera",
                "name": "Camera",
                "camera": {"type": "perspective", "fov": 60, "near": 0.1, "far": 1000},
                "components": {},
                "position": [0, 1.6, 3],
                "rotation": [0, 0, 0, 1],
                "scale": [1, 1, 1],
                "order": 0,
                "parentId": "default-space",
            }
        },
        "scripts": [],
    }


def find_scene_document(root: PathArg) -> Optional[Path]:
    for rel in SCENE_LOCATIONS:
        candidate = Path(root) / rel
        if candidate.is_file():
            return candidate
    return None


def ensure_scene_document(root: PathArg) -> Path:
    existing = find_scene_document(root)
    if existing is not None:
        return existing
    target = Path(root) / DEFAULT_SCENE_LOCATION
    write_document(target, scene_template())
    logger.info("Scaffolded scene document at %s", target)
    return target
