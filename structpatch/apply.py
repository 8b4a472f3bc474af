"""
structpatch.apply — Apply a patch to a record or a mapping.

Two targets, two contracts:

    apply_to_mapping(target, patch)  → a NEW dict; target and patch are
                                       never modified
    apply_to_record(target, patch)   → the record itself, modified in place

apply(target, patch) picks one by the runtime shape of ``target``.

Patch entries are read as follows:

    DELETE                         remove the key / null the slot
    mapping onto mapping           merge recursively (never a wholesale
                                   replacement)
    mapping onto record            patch the record's slots recursively
    anything else                  replace, converting to the slot's
                                   declared type for records

Diff and apply are deliberately asymmetric for nested mappings: diff
describes a changed nested mapping as a nested patch, and apply merges
that patch into whatever mapping it finds at the key.

Uniform mapping slots (``dict[str, int]`` and the like) are the one
exception on the record side: a patch mapping replaces them wholesale.

FAILURE
───────

apply_to_record stops at the first failing entry and raises.  Entries
applied before the failure stay applied; there is no rollback.  Callers
that need all-or-nothing behaviour should patch a copy and swap it in:

    draft = copy.deepcopy(record)
    apply_to_record(draft, patch)
    record = draft
"""

import copy
import logging
from collections.abc import MutableMapping
from typing import Any, Optional

from .coerce import coerce, is_dynamic_mapping_type
from .errors import FieldNotFoundError, NullabilityError, PatchError, PatchTypeError
from .fields import Slot, catalog, unwrap_optional
from .shapes import DELETE, is_mapping, is_record

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  MAPPINGS
# ═══════════════════════════════════════════════════════════════════

def apply_to_mapping(target: Optional[dict], patch: Optional[dict]) -> Optional[dict]:
    """
    Apply ``patch`` to a copy of ``target`` and return the copy.

    A None target is treated as empty.  When both are None the result
    is None.
    """
    if target is None and patch is None:
        return None
    result = copy.deepcopy(dict(target)) if target is not None else {}
    if patch:
        _merge_into(result, patch)
    return result


def _merge_into(dest: dict, patch: dict) -> dict:
    """Apply ``patch`` onto ``dest``, which the caller already owns."""
    for key, value in patch.items():
        if value is DELETE:
            dest.pop(key, None)
            continue

        if not is_mapping(value):
            dest[key] = copy.deepcopy(value)
            continue

        existing = dest.get(key)
        if is_mapping(existing):
            if not isinstance(existing, dict):
                existing = dict(existing)
            dest[key] = _merge_into(existing, value)
        elif is_record(existing):
            dest[key] = _patch_record_or_replace(key, existing, value)
        else:
            dest[key] = _merge_into({}, value)

    return dest


def _patch_record_or_replace(key: str, record: Any, value: dict) -> Any:
    # ``record`` is already a private copy; a failed patch just discards it.
    try:
        apply_to_record(record, value)
    except PatchError as exc:
        logger.debug("patching record at %r failed (%s), replacing it with the patch", key, exc)
        return _merge_into({}, value)
    return record


# ═══════════════════════════════════════════════════════════════════
#  RECORDS
# ═══════════════════════════════════════════════════════════════════

def apply_to_record(target: Any, patch: Optional[dict]) -> Any:
    """
    Apply ``patch`` to ``target`` in place and return ``target``.

    Raises:
        PatchTypeError       target is None or not a record, or a value
                             cannot be converted to its slot's type
        FieldNotFoundError   a patch key names no slot
        NullabilityError     DELETE or None for a slot that cannot hold None
    """
    if target is None:
        raise PatchTypeError("target is None")
    if not is_record(target):
        raise PatchTypeError(
            f"target must be a record, got {type(target).__qualname__}",
            actual=type(target),
        )
    if not patch:
        return target

    cat = catalog(target)
    type_name = type(target).__qualname__

    for key, value in patch.items():
        slot = cat.resolve(key)
        if slot is None:
            raise FieldNotFoundError(key, type_name)

        if value is DELETE or value is None:
            if not slot.nullable:
                raise NullabilityError(
                    f"field {key!r} of {type_name}",
                    path=(key,),
                    details={"key": key, "record_type": type_name},
                )
            slot.set(target, None)
            continue

        try:
            slot.set(target, _patched_slot_value(slot, slot.get(target), value))
        except PatchError as exc:
            exc.prefixed(key)
            raise

    return target


def _patched_slot_value(slot: Slot, existing: Any, value: Any) -> Any:
    if not is_mapping(value):
        return coerce(value, slot.type)

    if is_record(existing):
        apply_to_record(existing, value)
        return existing

    declared = unwrap_optional(slot.type)
    if is_dynamic_mapping_type(declared) or (declared is Any and is_mapping(existing)):
        if is_mapping(existing):
            return apply_to_mapping(existing, value)
        return apply_to_mapping({}, value)

    return coerce(value, slot.type)


# ═══════════════════════════════════════════════════════════════════
#  DISPATCH
# ═══════════════════════════════════════════════════════════════════

def apply(target: Any, patch: Optional[dict]) -> Any:
    """
    Apply ``patch`` to ``target`` in place, whatever its shape.

    Records go through apply_to_record.  Mutable mappings are updated
    with the merged result of apply_to_mapping.  Returns ``target``.
    """
    if target is None:
        raise PatchTypeError("target is None")

    if is_record(target):
        return apply_to_record(target, patch)

    if isinstance(target, MutableMapping):
        merged = apply_to_mapping(target, patch)
        target.clear()
        target.update(merged)
        return target

    raise PatchTypeError(
        f"target must be a record or a mutable mapping, got {type(target).__qualname__}",
        actual=type(target),
    )
