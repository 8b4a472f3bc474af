"""
structpatch.fields — Field Catalog
==================================

A record type's catalog lists its externally visible slots in declaration
order.  Each slot carries:

    • its declared identifier (the dataclass field name)
    • its external name, taken from the field's naming tag when present
    • an exclusion flag (tag "-")
    • its nullability, derived from the declared type

Naming tags live in the field metadata under TAG_KEY and follow the
familiar "name,modifier,..." layout:

    @dataclass
    class User:
        name: str = tagged("name")
        email: Optional[str] = tagged("email,omitempty", default=None)
        password: str = tagged("-", default="")

The "omitempty" modifier is parsed but never acted upon: only true absence
(None) drops a slot from a normalized mapping, emptiness never does.

Catalogs are built once per type and cached.
"""

import dataclasses
import functools
import typing
from dataclasses import dataclass
from types import UnionType
from typing import Any, Optional, Union

# Field metadata key holding the naming tag.
TAG_KEY = "json"

# Tag value that excludes a slot.
EXCLUDE = "-"

_UNION_TYPES = (Union, UnionType)


def tagged(tag: str, **kwargs) -> Any:
    """Shorthand for ``dataclasses.field`` carrying a naming tag."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TAG_KEY] = tag
    return dataclasses.field(metadata=metadata, **kwargs)


def parse_tag(tag: Optional[str], fallback: str) -> tuple[str, bool, bool]:
    """
    Resolve a naming tag into ``(external_name, excluded, omit_empty)``.

    An explicit name wins unless it is empty or the exclusion sentinel,
    in which case the declared identifier is used.
    """
    if tag is None or tag == "":
        return fallback, False, False
    if tag == EXCLUDE:
        return fallback, True, False
    name, *modifiers = tag.split(",")
    omit_empty = "omitempty" in modifiers
    return (name or fallback), False, omit_empty


# ═══════════════════════════════════════════════════════════════════
#  TYPE HINT HELPERS
# ═══════════════════════════════════════════════════════════════════

def _is_union(hint: Any) -> bool:
    return typing.get_origin(hint) in _UNION_TYPES


def is_nullable(hint: Any) -> bool:
    """True when a slot with this declared type may hold None."""
    if hint is Any or hint is object or hint is None or hint is type(None):
        return True
    if _is_union(hint):
        return type(None) in typing.get_args(hint)
    return False


def unwrap_optional(hint: Any) -> Any:
    """``Optional[X]`` → ``X``.  Other unions keep their remaining members."""
    if not _is_union(hint):
        return hint
    members = tuple(a for a in typing.get_args(hint) if a is not type(None))
    if len(members) == 1:
        return members[0]
    if not members:
        return type(None)
    return Union[members]


# ═══════════════════════════════════════════════════════════════════
#  SLOTS AND CATALOGS
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Slot:
    """One named, accessible slot of a record type."""
    name: str
    external: str
    type: Any
    nullable: bool
    excluded: bool = False
    omit_empty: bool = False
    frozen: bool = False

    def get(self, record: Any) -> Any:
        return getattr(record, self.name)

    def set(self, record: Any, value: Any) -> None:
        if self.frozen:
            object.__setattr__(record, self.name, value)
        else:
            setattr(record, self.name, value)

    def __repr__(self) -> str:
        flags = []
        if self.excluded:
            flags.append("excluded")
        if self.nullable:
            flags.append("nullable")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"Slot({self.name!r} as {self.external!r}{suffix})"


@dataclass(frozen=True)
class Catalog:
    """The ordered slots of one record type."""
    record_type: type
    slots: tuple[Slot, ...]

    def included(self):
        """Slots that take part in diffing, normalizing and patching."""
        return (s for s in self.slots if not s.excluded)

    def resolve(self, name: str) -> Optional[Slot]:
        """
        Find the slot answering to an external name.

        Linear scan in declaration order; when two slots share an external
        name the first one wins.
        """
        for slot in self.slots:
            if not slot.excluded and slot.external == name:
                return slot
        return None

    def names(self) -> list[str]:
        return [s.external for s in self.included()]

    def __len__(self) -> int:
        return len(self.slots)


def catalog(record: Any) -> Catalog:
    """Return the cached catalog of a record instance or record type."""
    cls = record if isinstance(record, type) else type(record)
    return _build_catalog(cls)


@functools.lru_cache(maxsize=None)
def _build_catalog(cls: type) -> Catalog:
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls.__qualname__} is not a record type")

    try:
        hints = typing.get_type_hints(cls)
    except NameError:
        # Unresolvable forward references: unresolved slots accept anything.
        hints = {}

    frozen = cls.__dataclass_params__.frozen
    slots = []
    for f in dataclasses.fields(cls):
        if f.name.startswith("_"):
            continue
        external, excluded, omit_empty = parse_tag(f.metadata.get(TAG_KEY), f.name)
        hint = hints.get(f.name, Any)
        nullable = is_nullable(hint) or f.default is None
        slots.append(Slot(
            name=f.name,
            external=external,
            type=hint,
            nullable=nullable,
            excluded=excluded,
            omit_empty=omit_empty,
            frozen=frozen,
        ))
    return Catalog(record_type=cls, slots=tuple(slots))
