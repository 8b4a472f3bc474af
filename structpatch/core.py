"""
structpatch.core — Diff Engine
==============================

diff(old, new) returns the smallest patch that turns ``old`` into ``new``.

A patch is a dict.  Each entry is one of:

    • a replacement value       the key's new value, taken as a whole
    • a nested patch            both sides at the key are records/mappings
    • DELETE                    the key existed in old and is gone in new

Unchanged keys never appear.  For any two mappings:

    apply_to_mapping(old, diff(old, new)) == new


DISPATCH
────────

    old / new                          handled by
    ─────────────────────────────────  ─────────────────────────────────
    None / None                        {}
    record / record, same type         diff_records (slot by slot)
    mapping / mapping                  diff_mappings (key by key)
    any other mix with a composite     normalize both, diff_mappings
    leaf / leaf                        {} if equal, else {ROOT_KEY: new}

Records of different types, and records against mappings, are compared
through their normalized mappings.  A leaf facing a composite counts as
absent.  None of this is an error: the fallback is logged at DEBUG level
and the diff carries on.

Same-type record diffs emit replacement values in normalized form, so a
nested record that appears in a record patch is always a dict.  Mapping
diffs emit replacement values verbatim.


EQUALITY
────────

values_equal() is total: every reachable shape has a defined answer and
no comparison raises.

    mappings    same keys, pairwise equal values
    sequences   same length, pairwise equal items
    records     structural diff is empty
    leaves      ==, with bool never equal to a non-bool (True == 1 is
                not a match) and a non-bool result of == falling back to
                identity
"""

import logging
from typing import Any, Optional

from .fields import catalog
from .formats import normalize
from .shapes import DELETE, ROOT_KEY, Shape, is_atomic, is_composite, shape_of

logger = logging.getLogger(__name__)

Patch = dict[str, Any]


# ═══════════════════════════════════════════════════════════════════
#  EQUALITY
# ═══════════════════════════════════════════════════════════════════

def values_equal(a: Any, b: Any) -> bool:
    """Structural equality used wherever a value is not diffed further."""
    if a is b:
        return True

    sa, sb = shape_of(a), shape_of(b)
    if sa is not sb:
        return False

    if sa is Shape.ABSENT:
        return True

    if sa is Shape.MAPPING:
        if len(a) != len(b):
            return False
        for key, val in a.items():
            if key not in b or not values_equal(val, b[key]):
                return False
        return True

    if sa is Shape.SEQUENCE:
        if len(a) != len(b):
            return False
        return all(values_equal(x, y) for x, y in zip(a, b))

    if sa is Shape.RECORD:
        return not diff_records(a, b)

    return _leaf_equal(a, b)


def _leaf_equal(a: Any, b: Any) -> bool:
    # bool is a subclass of int; True must not match 1.
    if (type(a) is bool) != (type(b) is bool):
        return False
    result = a == b
    if isinstance(result, bool):
        return result
    # Array-like or otherwise exotic comparison result.
    return a is b


# ═══════════════════════════════════════════════════════════════════
#  DIFF
# ═══════════════════════════════════════════════════════════════════

def diff(old: Any, new: Any) -> Patch:
    """
    Compute the patch from ``old`` to ``new``.

    Both values may be records, mappings, None or leaves in any mix;
    see the module docstring for the dispatch table.
    """
    so, sn = shape_of(old), shape_of(new)

    if so is Shape.ABSENT and sn is Shape.ABSENT:
        return {}

    if so is Shape.RECORD and sn is Shape.RECORD and type(old) is type(new):
        return _diff_same_type(old, new)

    if so is Shape.MAPPING and sn is Shape.MAPPING:
        return diff_mappings(old, new)

    if is_composite(old) or is_composite(new):
        logger.debug("shape mismatch %s/%s, diffing normalized mappings", so.name, sn.name)
        return diff_mappings(_as_mapping(old), _as_mapping(new))

    if values_equal(old, new):
        return {}
    return {ROOT_KEY: new}


def diff_records(old: Any, new: Any) -> Patch:
    """
    Compute the patch between two records.

    Records of the same type are compared slot by slot.  A None on either
    side, records of different types, or non-record input fall back to
    the diff of the normalized mappings.
    """
    so, sn = shape_of(old), shape_of(new)

    if so is Shape.ABSENT and sn is Shape.ABSENT:
        return {}

    if so is Shape.RECORD and sn is Shape.RECORD and type(old) is type(new):
        return _diff_same_type(old, new)

    logger.debug("record diff on %s/%s, diffing normalized mappings", so.name, sn.name)
    return diff_mappings(_as_mapping(old), _as_mapping(new))


def diff_mappings(old: Optional[dict], new: Optional[dict]) -> Patch:
    """
    Compute the patch between two mappings.

    • key only in new          → new value, verbatim
    • key only in old          → DELETE
    • both sides composite     → nested patch, when non-empty
    • otherwise                → new value, when not equal
    """
    if old is None and new is None:
        return {}
    if old is None:
        return dict(new)
    if new is None:
        return {key: DELETE for key in old}

    result: Patch = {}

    for key, new_val in new.items():
        if key not in old:
            result[key] = new_val
            continue

        old_val = old[key]
        if is_composite(old_val) and is_composite(new_val):
            sub = diff(old_val, new_val)
            if sub:
                result[key] = sub
        elif not values_equal(old_val, new_val):
            result[key] = new_val

    for key in old:
        if key not in new:
            result[key] = DELETE

    return result


def _diff_same_type(old: Any, new: Any) -> Patch:
    """Slot-by-slot diff of two records of one type."""
    result: Patch = {}
    old_catalog = catalog(old)
    seen = set()

    for slot in catalog(new).included():
        seen.add(slot.external)
        new_val = slot.get(new)
        old_slot = old_catalog.resolve(slot.external)

        if new_val is None:
            if old_slot is not None and old_slot.get(old) is not None:
                result[slot.external] = DELETE
            continue

        if old_slot is None:
            result[slot.external] = normalize(new_val)
            continue

        old_val = old_slot.get(old)
        if old_val is None:
            result[slot.external] = normalize(new_val)
            continue

        if is_atomic(old_val) or is_atomic(new_val):
            if not values_equal(old_val, new_val):
                result[slot.external] = new_val
        elif is_composite(old_val) and is_composite(new_val):
            sub = diff(old_val, new_val)
            if sub:
                result[slot.external] = sub
        elif not values_equal(old_val, new_val):
            result[slot.external] = normalize(new_val)

    for slot in old_catalog.included():
        if slot.external not in seen and slot.get(old) is not None:
            result[slot.external] = DELETE

    return result


def _as_mapping(value: Any) -> Optional[dict]:
    """Normalized mapping view of a composite; None for anything else."""
    if is_composite(value):
        return normalize(value)
    return None
