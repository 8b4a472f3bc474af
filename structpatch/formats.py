"""
structpatch.formats — Convert records into canonical mappings.

Supported conversions:
    • records (dataclass instances) → dict, recursively
    • patches with DELETE ↔ patches with None as the deletion marker

Normalization rules:
    record       → dict of its included slots, keyed by external name
    None slot    → omitted entirely (absence, not deletion)
    zero values  → kept ("" / 0 / False / [] are present values)
    list/tuple   → list of normalized elements
    mapping      → dict with str() keys and normalized values
    atomic/leaf  → unchanged
"""

from typing import Any, Optional

from .errors import PatchTypeError
from .fields import catalog
from .shapes import DELETE, is_mapping, is_record, is_sequence


# ═══════════════════════════════════════════════════════════════════
#  RECORDS → MAPPINGS
# ═══════════════════════════════════════════════════════════════════

def to_mapping(value: Any) -> Optional[dict[str, Any]]:
    """
    Convert a record to a plain dict.

    Returns None for None.  Mappings are accepted too and come back as a
    normalized copy, so callers holding either shape get the same result.
    """
    if value is None:
        return None
    if is_record(value) or is_mapping(value):
        return normalize(value)
    raise PatchTypeError(
        f"cannot convert {type(value).__qualname__} to a mapping",
        actual=type(value),
    )


def normalize(value: Any) -> Any:
    """Recursively normalize any value; see the module docstring."""
    if is_record(value):
        result = {}
        for slot in catalog(value).included():
            field_val = slot.get(value)
            if field_val is None:
                continue
            result[slot.external] = normalize(field_val)
        return result

    if is_mapping(value):
        return {str(k): normalize(v) for k, v in value.items()}

    if is_sequence(value):
        return [normalize(item) for item in value]

    return value


# ═══════════════════════════════════════════════════════════════════
#  DELETION MARKER CONVERSION
# ═══════════════════════════════════════════════════════════════════

def to_nullable(patch: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Replace every DELETE in a patch (and its nested patches) with None.

    The result can be stored wherever the sentinel cannot, at the cost of
    no longer being able to set a key to None.
    """
    if patch is None:
        return None
    result = {}
    for key, value in patch.items():
        if value is DELETE:
            result[key] = None
        elif is_mapping(value):
            result[key] = to_nullable(value)
        else:
            result[key] = value
    return result


def from_nullable(patch: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Inverse of to_nullable: every None in a patch becomes DELETE."""
    if patch is None:
        return None
    result = {}
    for key, value in patch.items():
        if value is None:
            result[key] = DELETE
        elif is_mapping(value):
            result[key] = from_nullable(value)
        else:
            result[key] = value
    return result
