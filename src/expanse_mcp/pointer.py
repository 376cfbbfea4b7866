"""Slash-delimited pointer addressing over JSON-compatible trees.

Documents are plain ``dict``/``list``/scalar values as produced by ``json``.
A token addresses a list index only when it is all digits *and* the current
node is a list, so mappings with numeric-string keys still resolve by key.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Union

from .shared.errors import IndexOutOfRangeError, NotAMappingError, NotASequenceError, PointerError, RootWriteError

JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]

_INDEX_RE = re.compile(r"^[0-9]+$")
APPEND_TOKEN = "-"


class _Missing:
    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def decode_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def encode_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def parse_pointer(pointer: str) -> List[str]:
    if pointer in ("", "/"):
        return []
    body = pointer[1:] if pointer.startswith("/") else pointer
    return [decode_token(tok) for tok in body.split("/")]


def build_pointer(tokens: Iterable[Union[str, int]]) -> str:
    parts = [encode_token(str(tok)) for tok in tokens]
    return "/" + "/".join(parts) if parts else ""


def _is_index(token: str) -> bool:
    return bool(_INDEX_RE.match(token))


def _child(node: Any, token: str) -> Any:
    if isinstance(node, list):
        if not _is_index(token):
            return MISSING
        idx = int(token)
        return node[idx] if idx < len(node) else MISSING
    if isinstance(node, dict):
        return node.get(token, MISSING)
    return MISSING


def _walk(doc: Any, tokens: List[str]) -> Any:
    node = doc
    for token in tokens:
        node = _child(node, token)
        if node is MISSING:
            return MISSING
    return node


def get(doc: Any, pointer: str) -> Any:
    """Return the value at ``pointer`` or ``MISSING``; never raises for absent paths."""
    return _walk(doc, parse_pointer(pointer))


def has(doc: Any, pointer: str) -> bool:
    return get(doc, pointer) is not MISSING


def _assign(container: Any, token: str, value: Any, pointer: str) -> None:
    if isinstance(container, dict):
        container[token] = value
        return
    if isinstance(container, list):
        if token == APPEND_TOKEN:
            container.append(value)
            return
        if not _is_index(token):
            raise NotAMappingError(pointer, f"Key '{token}' used on an array")
        idx = int(token)
        if idx > len(container):
            raise IndexOutOfRangeError(pointer, idx, len(container))
        if idx == len(container):
            container.append(value)
        else:
            container[idx] = value
        return
    raise NotAMappingError(pointer, "Cannot descend into a scalar")


def set(doc: Any, pointer: str, value: Any) -> Any:  # noqa: A001
    """Set ``value`` at ``pointer``, creating intermediate containers.

    A missing intermediate becomes a list when the following token is numeric
    (or ``-``), otherwise a dict. Returns ``doc``.
    """
    tokens = parse_pointer(pointer)
    if not tokens:
        raise RootWriteError(pointer)
    node = doc
    for i, token in enumerate(tokens[:-1]):
        nxt = _child(node, token)
        if nxt is MISSING or nxt is None:
            following = tokens[i + 1]
            nxt = [] if (_is_index(following) or following == APPEND_TOKEN) else {}
            _assign(node, token, nxt, pointer)
        elif not isinstance(nxt, (dict, list)):
            raise NotAMappingError(build_pointer(tokens[: i + 1]), "Cannot descend into a scalar")
        node = nxt
    _assign(node, tokens[-1], value, pointer)
    return doc


def remove(doc: Any, pointer: str) -> bool:
    """Remove the value at ``pointer``; ``False`` when nothing was there."""
    tokens = parse_pointer(pointer)
    if not tokens:
        raise RootWriteError(pointer)
    parent = _walk(doc, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        if last in parent:
            del parent[last]
            return True
        return False
    if isinstance(parent, list) and _is_index(last):
        idx = int(last)
        if idx < len(parent):
            del parent[idx]
            return True
    return False


def push(doc: Any, pointer: str, value: Any) -> int:
    """Append ``value`` to the array at ``pointer``; returns the new length."""
    target = get(doc, pointer)
    if not isinstance(target, list):
        raise NotASequenceError(pointer)
    target.append(value)
    return len(target)


def merge(doc: Any, pointer: str, partial: Any) -> Dict[str, Any]:
    """Shallow-merge ``partial`` into the object at ``pointer``."""
    target = get(doc, pointer)
    if not isinstance(target, dict):
        raise NotAMappingError(pointer)
    if not isinstance(partial, dict):
        raise NotAMappingError(pointer, "Merge value is not an object")
    target.update(partial)
    return target


def find_arrays_by_key(doc: Any, candidate_keys: Iterable[str]) -> List[Dict[str, Any]]:
    """Every pointer whose terminal key is a candidate and whose value is an array."""
    keys = frozenset(candidate_keys)
    found: List[Dict[str, Any]] = []

    def visit(node: Any, tokens: List[str]) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                path = tokens + [key]
                if key in keys and isinstance(value, list):
                    found.append({"pointer": build_pointer(path), "length": len(value)})
                visit(value, path)
        elif isinstance(node, list):
            for idx, value in enumerate(node):
                visit(value, tokens + [str(idx)])

    visit(doc, [])
    return found


PATCH_OPS = ("set", "remove", "push", "merge")


def apply_operation(doc: Any, operation: Dict[str, Any]) -> Dict[str, Any]:
    op = operation.get("op")
    pointer = operation.get("pointer", operation.get("path", ""))
    if not isinstance(pointer, str):
        raise PointerError("pointer must be a string", str(pointer))
    if op == "set":
        set(doc, pointer, operation.get("value"))
        return {}
    if op == "remove":
        return {"removed": remove(doc, pointer)}
    if op == "push":
        return {"length": push(doc, pointer, operation.get("value"))}
    if op == "merge":
        merge(doc, pointer, operation.get("value"))
        return {}
    raise PointerError(f"Unsupported op '{op}' (expected one of {', '.join(PATCH_OPS)})", pointer)


def apply_patch(doc: Any, operations: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Apply operations in order; one failing op does not stop the rest."""
    results: List[Dict[str, Any]] = []
    for operation in operations:
        op = operation.get("op") if isinstance(operation, dict) else None
        pointer = operation.get("pointer", operation.get("path")) if isinstance(operation, dict) else None
        entry: Dict[str, Any] = {"op": op, "pointer": pointer}
        if not isinstance(operation, dict):
            entry.update(ok=False, error="operation must be an object")
            results.append(entry)
            continue
        try:
            extra = apply_operation(doc, operation)
        except PointerError as exc:
            entry.update(ok=False, error=str(exc))
        else:
            entry["ok"] = True
            entry.update(extra)
        results.append(entry)
    return results
