"""
structpatch
===========

Minimal patches between two versions of structured data.

    diff({"a": 1, "b": 2, "c": 3}, {"a": 1, "b": 20, "d": 4})
        → {"b": 20, "c": DELETE, "d": 4}

    apply_to_mapping({"x": 1, "y": 2}, {"x": DELETE})
        → {"y": 2}

Values may be records (dataclass instances with a fixed set of named
slots) or mappings (dicts of arbitrary nesting), in any combination.
Records of one type are compared slot by slot; everything else meets
on common ground as normalized mappings.  A patch names only what
changed:

    • a replacement value for a changed or added key
    • a nested patch when both sides at a key are records/mappings
    • DELETE for a key that is gone

Applying a patch either returns a fresh mapping (apply_to_mapping) or
updates a record in place (apply_to_record), converting patch values to
the record's declared slot types.
"""

from structpatch.shapes import (
    DELETE,
    Marker,
    ROOT_KEY,
    Shape,
    is_atomic,
    is_composite,
    is_mapping,
    is_record,
    register_atomic,
    shape_of,
)
from structpatch.fields import Catalog, Slot, catalog, tagged
from structpatch.formats import normalize, to_mapping, from_nullable, to_nullable
from structpatch.core import diff, diff_mappings, diff_records, values_equal
from structpatch.apply import apply, apply_to_mapping, apply_to_record
from structpatch.coerce import coerce
from structpatch.errors import (
    PatchError,
    FieldNotFoundError,
    PatchTypeError,
    NullabilityError,
)

__version__ = "0.1.0"
__all__ = [
    "DELETE", "Marker", "ROOT_KEY", "Shape", "register_atomic", "shape_of",
    "is_atomic", "is_composite", "is_mapping", "is_record",
    "Catalog", "Slot", "catalog", "tagged",
    "normalize", "to_mapping", "from_nullable", "to_nullable",
    "diff", "diff_mappings", "diff_records", "values_equal",
    "apply", "apply_to_mapping", "apply_to_record",
    "coerce",
    "PatchError", "FieldNotFoundError", "PatchTypeError", "NullabilityError",
]
