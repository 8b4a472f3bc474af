"""Error definitions for structpatch."""

from typing import Any, Dict, Optional


class PatchError(Exception):
    """Base exception for patch application errors."""

    code = "PATCH_ERROR"

    def __init__(self, message: str, path: tuple = (), details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.path = tuple(path)
        self.details = details or {}

    def __str__(self) -> str:
        if not self.path:
            return self.message
        path_str = "/".join(str(p) for p in self.path)
        return f"{path_str}: {self.message}"

    def prefixed(self, key: str) -> "PatchError":
        """Prepend a parent key to the error path and return self."""
        self.path = (key,) + self.path
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "path": list(self.path),
        }
        if self.details:
            result["details"] = self.details
        return result


class FieldNotFoundError(PatchError, LookupError):
    """The patch names a key that no slot of the record answers to."""

    code = "FIELD_NOT_FOUND"

    def __init__(self, key: str, record_type: str, path: tuple = ()):
        super().__init__(
            f"field {key!r} not found in {record_type}",
            path=path or (key,),
            details={"key": key, "record_type": record_type},
        )
        self.key = key


class PatchTypeError(PatchError, TypeError):
    """A patch value cannot be converted to the slot's declared type."""

    code = "TYPE_MISMATCH"

    def __init__(self, message: str, path: tuple = (), expected: Any = None, actual: Any = None):
        details = {}
        if expected is not None:
            details["expected"] = _type_name(expected)
        if actual is not None:
            details["actual"] = _type_name(actual)
        super().__init__(message, path=path, details=details)


class NullabilityError(PatchError, ValueError):
    """A null value or deletion marker targets a slot that cannot hold None."""

    code = "NOT_NULLABLE"

    def __init__(self, target: str, path: tuple = (), details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"cannot set non-nullable {target} to None",
            path=path,
            details=details,
        )


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp)
