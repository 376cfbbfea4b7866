from __future__ import annotations

from typing import Any, Dict, Optional


class ExpanseError(Exception):
    code = "expanse_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PathEscapeError(ExpanseError):
    code = "path_escape"

    def __init__(self, path: str, root: str) -> None:
        super().__init__(f"Path escapes project root: {path}")
        self.path = path
        self.root = root


class InvalidJsonError(ExpanseError):
    code = "invalid_json"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid JSON in {path}: {reason}")
        self.path = path
        self.reason = reason


class PointerError(ExpanseError):
    code = "pointer_error"

    def __init__(self, message: str, pointer: str) -> None:
        super().__init__(message)
        self.pointer = pointer


class RootWriteError(PointerError):
    code = "root_write"

    def __init__(self, pointer: str = "") -> None:
        super().__init__("Cannot replace the document root through a pointer", pointer)


class NotASequenceError(PointerError):
    code = "not_a_sequence"

    def __init__(self, pointer: str) -> None:
        super().__init__(f"Target is not an array: {pointer}", pointer)


class NotAMappingError(PointerError):
    code = "not_a_mapping"

    def __init__(self, pointer: str, detail: str = "Target is not an object") -> None:
        super().__init__(f"{detail}: {pointer}", pointer)


class IndexOutOfRangeError(PointerError):
    code = "index_out_of_range"

    def __init__(self, pointer: str, index: int, length: int) -> None:
        super().__init__(f"Index {index} is past the end of an array of length {length}: {pointer}", pointer)
        self.index = index
        self.length = length


class NotASceneError(ExpanseError):
    code = "not_a_scene"

    def __init__(self, path: str, kind: str) -> None:
        super().__init__(f"Scene document {path} holds a JSON {kind}, not an object; left unchanged")
        self.path = path


class UnknownToolError(ExpanseError):
    code = "unknown_tool"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class SchemaValidationError(ExpanseError):
    code = "schema_validation_error"


class CatalogError(ExpanseError):
    code = "catalog_error"


class ToolError(Exception):
    def __init__(self, message: str, code: int = -32000, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.data = data or {}
