"""
structpatch.shapes — value shapes and the deletion marker.

Every value the engines see falls into one of five shapes:

    ABSENT    None
    RECORD    a dataclass instance whose type is not registered as atomic
    MAPPING   any collections.abc.Mapping
    SEQUENCE  a list or tuple
    LEAF      everything else, including atomic composites such as datetime

Diff and apply dispatch on these shapes.
"""

import dataclasses
import datetime
from collections.abc import Mapping
from enum import Enum, auto
from typing import Any


class Marker(Enum):
    """Sentinel patch values."""
    DELETE = auto()     # Remove this key from the target

    def __repr__(self) -> str:
        return self.name


DELETE = Marker.DELETE

# Key under which a leaf-vs-leaf diff carries the new value.
ROOT_KEY = ""


class Shape(Enum):
    ABSENT = auto()
    RECORD = auto()
    MAPPING = auto()
    SEQUENCE = auto()
    LEAF = auto()


# Composite types that are compared as a whole and never recursed into.
ATOMIC_TYPES: set[type] = {
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
}


def register_atomic(cls: type) -> type:
    """
    Treat ``cls`` (and its subclasses) as an atomic leaf.

    Usable as a class decorator on dataclasses that should be replaced
    wholesale rather than diffed field by field.
    """
    ATOMIC_TYPES.add(cls)
    return cls


def is_atomic(value: Any) -> bool:
    return isinstance(value, tuple(ATOMIC_TYPES))


def is_record(value: Any) -> bool:
    return (
        dataclasses.is_dataclass(value)
        and not isinstance(value, type)
        and not is_atomic(value)
    )


def is_record_type(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and dataclasses.is_dataclass(tp)
        and not issubclass(tp, tuple(ATOMIC_TYPES))
    )


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_composite(value: Any) -> bool:
    """Records and mappings: the shapes a nested patch can describe."""
    return is_record(value) or is_mapping(value)


def shape_of(value: Any) -> Shape:
    if value is None:
        return Shape.ABSENT
    if is_record(value):
        return Shape.RECORD
    if is_mapping(value):
        return Shape.MAPPING
    if is_sequence(value):
        return Shape.SEQUENCE
    return Shape.LEAF
