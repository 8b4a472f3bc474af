"""
structpatch.coerce — convert patch values to a slot's declared type.

    identical type              → as is
    number → number             → converted, lossy (3.9 → 3, 10**400 → inf)
    str → int / float / bool    → parsed; PatchTypeError on failure
    str → datetime / date       → ISO-8601 / RFC 3339 ("Z" accepted,
                                  fractions cut to microseconds)
    bytes → str                 → decoded as UTF-8
    None → non-nullable type    → NullabilityError
    list / tuple → list[X] ...  → element-wise
    mapping → dict[K, V]        → element-wise, replacing the old map
    mapping → record type       → fresh zero-valued record, patched
    value → Enum subclass       → looked up by value

bool is not a number here: True never becomes 1 and 1 never becomes True.
Outbound conversion (number → str) is not performed.
"""

import copy
import dataclasses
import datetime
import decimal
import enum
import math
import numbers
import re
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, Literal

from .errors import NullabilityError, PatchError, PatchTypeError
from .fields import _is_union, is_nullable, unwrap_optional
from .shapes import DELETE, is_mapping, is_record_type, is_sequence

# Words accepted for a bool slot.
BOOL_WORDS = {
    "1": True, "t": True, "T": True, "true": True, "TRUE": True, "True": True,
    "0": False, "f": False, "F": False, "false": False, "FALSE": False, "False": False,
}

_LIST_ORIGINS = (list, Sequence, MutableSequence)
_SET_ORIGINS = (set, frozenset)
_DICT_ORIGINS = (dict, Mapping, MutableMapping)

# Fractional seconds; fromisoformat on 3.10 takes only 3 or 6 digits.
_FRACTION = re.compile(r"\.(\d+)")


def is_dynamic_mapping_type(hint: Any) -> bool:
    """
    True for mapping types whose values are free-form: ``dict``,
    ``dict[str, Any]``, ``Mapping``.  Patches merge into these.

    Uniform maps such as ``dict[str, int]`` are not dynamic; a patch
    replaces them wholesale.
    """
    hint = unwrap_optional(hint)
    if hint in _DICT_ORIGINS:
        return True
    if typing.get_origin(hint) in _DICT_ORIGINS:
        args = typing.get_args(hint)
        return not args or args[1] is Any or args[1] is object
    return False


def coerce(value: Any, hint: Any, path: tuple = ()) -> Any:
    """Convert ``value`` for a slot declared as ``hint``."""
    if hint is Any or hint is object:
        return owned(value)

    if value is None or value is DELETE:
        if is_nullable(hint):
            return None
        raise NullabilityError(f"{_name(hint)} value", path=path)

    if _is_union(hint):
        return _coerce_union(value, hint, path)

    origin = typing.get_origin(hint)
    if origin is not None:
        return _coerce_generic(value, hint, origin, path)

    if is_record_type(hint):
        return _coerce_record(value, hint, path)

    if hint is bool:
        return _coerce_bool(value, path)
    if hint is int or hint is float:
        return _coerce_number(value, hint, path)
    if hint is decimal.Decimal:
        return _coerce_decimal(value, path)
    if hint is str:
        return _coerce_str(value, path)
    if hint is datetime.datetime or hint is datetime.date:
        return _coerce_timestamp(value, hint, path)
    if isinstance(hint, type) and issubclass(hint, enum.Enum):
        return _coerce_enum(value, hint, path)

    if isinstance(hint, type) and isinstance(value, hint):
        return owned(value)

    raise _mismatch(value, hint, path)


def _mismatch(value: Any, hint: Any, path: tuple) -> PatchTypeError:
    return PatchTypeError(
        f"cannot convert {type(value).__qualname__} to {_name(hint)}",
        path=path, expected=hint, actual=type(value),
    )


# ═══════════════════════════════════════════════════════════════════
#  SCALARS
# ═══════════════════════════════════════════════════════════════════

def _is_number(value: Any) -> bool:
    return isinstance(value, (numbers.Real, decimal.Decimal)) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    if isinstance(value, numbers.Integral):
        return True
    if isinstance(value, decimal.Decimal):
        return value.is_finite()
    return math.isfinite(value)


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except OverflowError:
        # Integers and fractions beyond float range.
        return math.inf if value > 0 else -math.inf
    except ValueError:
        # Signalling NaN Decimal.
        return math.nan


def _coerce_bool(value: Any, path: tuple) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value in BOOL_WORDS:
            return BOOL_WORDS[value]
        raise PatchTypeError(
            f"cannot convert string {value!r} to bool", path=path, expected=bool, actual=str,
        )
    raise _mismatch(value, bool, path)


def _coerce_number(value: Any, hint: type, path: tuple) -> Any:
    if type(value) is hint:
        return value
    if _is_number(value):
        if hint is float:
            return _to_float(value)
        if not _is_finite(value):
            raise PatchTypeError(
                f"cannot convert non-finite number {value!r} to int",
                path=path, expected=int, actual=type(value),
            )
        return int(value)
    if isinstance(value, str):
        try:
            return hint(value)
        except ValueError as exc:
            raise PatchTypeError(
                f"cannot convert string {value!r} to {hint.__name__}",
                path=path, expected=hint, actual=str,
            ) from exc
    raise _mismatch(value, hint, path)


def _coerce_decimal(value: Any, path: tuple) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if _is_number(value) or isinstance(value, str):
        try:
            return decimal.Decimal(str(value))
        except decimal.InvalidOperation as exc:
            raise PatchTypeError(
                f"cannot convert {value!r} to Decimal", path=path, expected=decimal.Decimal,
            ) from exc
    raise _mismatch(value, decimal.Decimal, path)


def _coerce_str(value: Any, path: tuple) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    raise _mismatch(value, str, path)


def _coerce_timestamp(value: Any, hint: type, path: tuple) -> Any:
    if hint is datetime.datetime and isinstance(value, datetime.datetime):
        return value
    if hint is datetime.date and isinstance(value, datetime.date):
        if isinstance(value, datetime.datetime):
            return value.date()
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        if hint is datetime.datetime:
            text = _FRACTION.sub(_six_digits, text, count=1)
        try:
            return hint.fromisoformat(text)
        except ValueError as exc:
            raise PatchTypeError(
                f"cannot parse time string {value!r}", path=path, expected=hint, actual=str,
            ) from exc
    raise _mismatch(value, hint, path)


def _six_digits(match: re.Match) -> str:
    return "." + (match.group(1) + "000000")[:6]


def _coerce_enum(value: Any, hint: type, path: tuple) -> enum.Enum:
    if isinstance(value, hint):
        return value
    try:
        return hint(value)
    except ValueError as exc:
        raise PatchTypeError(
            f"{value!r} is not a valid {hint.__name__}", path=path, expected=hint,
        ) from exc


# ═══════════════════════════════════════════════════════════════════
#  CONTAINERS AND RECORDS
# ═══════════════════════════════════════════════════════════════════

def _coerce_union(value: Any, hint: Any, path: tuple) -> Any:
    inner = unwrap_optional(hint)
    if not _is_union(inner):
        return coerce(value, inner, path)

    members = typing.get_args(inner)
    for member in members:
        if isinstance(member, type) and type(value) is member:
            return value
    last_error = None
    for member in members:
        try:
            return coerce(value, member, path)
        except PatchError as exc:
            last_error = exc
    raise _mismatch(value, hint, path) from last_error


def _coerce_generic(value: Any, hint: Any, origin: Any, path: tuple) -> Any:
    args = typing.get_args(hint)

    if origin is Literal:
        if value in args:
            return value
        raise PatchTypeError(f"{value!r} is not one of {args!r}", path=path, expected=hint)

    if origin in _LIST_ORIGINS or origin in _SET_ORIGINS or origin is tuple:
        if not is_sequence(value) and not isinstance(value, (set, frozenset)):
            raise _mismatch(value, hint, path)
        items = list(value)
        if origin is tuple:
            return _coerce_tuple(items, hint, args, path)
        item_hint = args[0] if args else Any
        converted = [coerce(v, item_hint, path + (i,)) for i, v in enumerate(items)]
        if origin in _SET_ORIGINS:
            return origin(converted)
        return converted

    if origin in _DICT_ORIGINS:
        if not is_mapping(value):
            raise _mismatch(value, hint, path)
        key_hint, val_hint = args if args else (Any, Any)
        return {
            coerce(k, key_hint, path): coerce(v, val_hint, path + (k,))
            for k, v in value.items()
            if v is not DELETE
        }

    if isinstance(origin, type) and isinstance(value, origin):
        return value

    raise _mismatch(value, hint, path)


def _coerce_tuple(items: list, hint: Any, args: tuple, path: tuple) -> tuple:
    if not args:
        return tuple(owned(v) for v in items)
    if len(args) == 2 and args[1] is Ellipsis:
        return tuple(coerce(v, args[0], path + (i,)) for i, v in enumerate(items))
    if len(args) != len(items):
        raise PatchTypeError(
            f"expected {len(args)} items for {_name(hint)}, got {len(items)}",
            path=path, expected=hint,
        )
    return tuple(coerce(v, a, path + (i,)) for i, (v, a) in enumerate(zip(items, args)))


def _coerce_record(value: Any, hint: type, path: tuple) -> Any:
    from .apply import apply_to_record

    if isinstance(value, hint):
        return copy.deepcopy(value)
    if not is_mapping(value):
        raise _mismatch(value, hint, path)
    record = zero_value(hint)
    try:
        apply_to_record(record, value)
    except PatchError as exc:
        exc.path = path + exc.path
        raise
    return record


def zero_value(hint: Any) -> Any:
    """
    The value a freshly allocated slot of type ``hint`` starts with.

    Records are built from the zero values of their required fields, so
    a nested record can be created from a partial patch.
    """
    if is_nullable(hint):
        return None
    origin = typing.get_origin(hint)
    if origin is not None:
        if origin in _LIST_ORIGINS:
            return []
        if origin in _DICT_ORIGINS:
            return {}
        if origin in _SET_ORIGINS:
            return origin()
        if origin is tuple:
            return ()
        if origin is Literal:
            return typing.get_args(hint)[0]
        return None
    if is_record_type(hint):
        return _zero_record(hint)
    if hint in (bool, int, float, str, bytes, list, dict, set, frozenset, tuple, decimal.Decimal):
        return hint()
    if hint is datetime.datetime:
        return datetime.datetime.min
    if hint is datetime.date:
        return datetime.date.min
    if isinstance(hint, type) and issubclass(hint, enum.Enum):
        return next(iter(hint))
    return None


def _zero_record(cls: type) -> Any:
    try:
        hints = typing.get_type_hints(cls)
    except NameError:
        hints = {}
    kwargs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        kwargs[f.name] = zero_value(hints.get(f.name, Any))
    return cls(**kwargs)


def owned(value: Any) -> Any:
    """A private copy of a free-form value, with deletion markers resolved."""
    from .apply import apply_to_mapping

    if is_mapping(value):
        return apply_to_mapping({}, value)
    return copy.deepcopy(value)


def _name(hint: Any) -> str:
    if isinstance(hint, type):
        return hint.__qualname__
    return repr(hint).replace("typing.", "")
