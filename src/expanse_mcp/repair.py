"""Best-effort normalization of ``.expanse.json`` scene documents.

``parentId`` is the source of truth for membership; a space's ``children``
list is rebuilt from it on every pass and never merged with what was there.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Sequence

GEOMETRY_NUMERIC_FIELDS = (
    "width",
    "height",
    "depth",
    "radius",
    "innerRadius",
    "outerRadius",
    "tube",
    "radialSegments",
    "tubularSegments",
    "thetaStart",
    "thetaLength",
    "arc",
    "angle",
    "segments",
    "detail",
)
SEGMENT_FIELDS = frozenset({"radialSegments", "tubularSegments", "segments"})
MATERIAL_NUMERIC_FIELDS = {"roughness": 0.5, "metalness": 0, "emissiveIntensity": 0}

POSITION_FALLBACK = (0, 0, 0)
SCALE_FALLBACK = (1, 1, 1)
ROTATION_FALLBACK = (0, 0, 0, 0)


def to_number(value: Any, fallback: float) -> float:
    """Coerce ``value`` to a finite number, else return ``fallback``."""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    if not math.isfinite(number):
        return fallback
    return number


def coerce_vector(value: Any, fallback: Sequence[float]) -> List[float]:
    items = value if isinstance(value, list) else []
    out: List[float] = []
    for idx, default in enumerate(fallback):
        raw = items[idx] if idx < len(items) else default
        out.append(to_number(raw, default))
    return out


def coerce_rotation(value: Any) -> List[float]:
    out = coerce_vector(value, ROTATION_FALLBACK)
    # a zero w is treated as a broken quaternion, not a 180 degree turn
    if out[3] == 0:
        out[3] = 1
    return out


def is_scene_document(doc: Any) -> bool:
    return isinstance(doc, dict) and (isinstance(doc.get("objects"), dict) or isinstance(doc.get("spaces"), dict))


def _unwrap_encoded_objects(objects: Dict[str, Any]) -> None:
    for object_id, value in list(objects.items()):
        if not isinstance(value, str):
            continue
        try:
            parsed = json.loads(value)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            objects[object_id] = parsed


def repair_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    obj["position"] = coerce_vector(obj.get("position"), POSITION_FALLBACK)
    obj["scale"] = coerce_vector(obj.get("scale"), SCALE_FALLBACK)
    obj["rotation"] = coerce_rotation(obj.get("rotation"))
    obj["order"] = to_number(obj.get("order"), 0)
    if not isinstance(obj.get("components"), dict):
        obj["components"] = {}

    light = obj.get("light")
    if isinstance(light, dict):
        light["intensity"] = to_number(light.get("intensity"), 1)

    geometry = obj.get("geometry")
    if isinstance(geometry, dict):
        for key in GEOMETRY_NUMERIC_FIELDS:
            if key in geometry:
                geometry[key] = to_number(geometry[key], 8 if key in SEGMENT_FIELDS else 1)

    material = obj.get("material")
    if isinstance(material, dict):
        for key, default in MATERIAL_NUMERIC_FIELDS.items():
            if key in material:
                material[key] = to_number(material[key], default)
    return obj


def repair(doc: Any) -> Any:
    """Normalize a scene document in place and return it.

    Documents with neither an ``objects`` nor a ``spaces`` mapping, or with no
    resolvable entry space, are returned untouched.
    """
    if not is_scene_document(doc):
        return doc

    # string-encoded objects are unwrapped even when no space can be resolved
    if isinstance(doc.get("objects"), dict):
        _unwrap_encoded_objects(doc["objects"])

    spaces = doc.get("spaces")
    entry_id = doc.get("entrySpaceId")
    if not isinstance(entry_id, str) or not entry_id:
        if not isinstance(spaces, dict) or not spaces:
            return doc
        entry_id = next(iter(spaces))
        doc["entrySpaceId"] = entry_id

    if not isinstance(spaces, dict):
        spaces = doc["spaces"] = {}
    entry_space = spaces.get(entry_id)
    if not isinstance(entry_space, dict):
        entry_space = spaces[entry_id] = {"id": entry_id, "name": entry_id}

    if not doc.get("activeCamera") and entry_space.get("activeCamera"):
        doc["activeCamera"] = entry_space["activeCamera"]

    objects = doc.get("objects")
    if not isinstance(objects, dict):
        objects = doc["objects"] = {}

    for obj in objects.values():
        if isinstance(obj, dict):
            repair_object(obj)

    children: List[str] = []
    for object_id, obj in objects.items():
        if not isinstance(obj, dict):
            continue
        if obj.get("parentId") in (None, ""):
            obj["parentId"] = entry_id
        if obj["parentId"] == entry_id:
            children.append(object_id)
    entry_space["children"] = children
    return doc
