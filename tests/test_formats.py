"""
Test suite for structpatch.fields and structpatch.formats.

    §1  Naming tags
    §2  Field catalog
    §3  Record → mapping normalization
    §4  Atomic types
    §5  Deletion marker conversion
"""

import datetime
import os
import sys
from dataclasses import dataclass
from typing import Any, Optional

import pytest

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structpatch.core import diff
from structpatch.errors import PatchTypeError
from structpatch.fields import catalog, is_nullable, parse_tag, tagged, unwrap_optional
from structpatch.formats import from_nullable, normalize, to_mapping, to_nullable
from structpatch.shapes import DELETE, register_atomic


@dataclass
class User:
    name: str = tagged("name")
    age: int = tagged("age")
    email: str = tagged("email")


@dataclass
class Tagged:
    username: str = tagged("user_name")
    password: str = tagged("-", default="")
    display: str = tagged(",omitempty", default="")
    plain: int = 0
    note: Optional[str] = tagged("note,omitempty", default=None)


@dataclass
class Company:
    name: str = tagged("name")
    ceo: Optional[User] = tagged("ceo", default=None)
    staff: list[User] = tagged("staff", default_factory=list)
    offices: dict[str, Any] = tagged("offices", default_factory=dict)
    founded: Optional[datetime.datetime] = tagged("founded", default=None)


@dataclass
class Collision:
    first: str = tagged("id", default="a")
    second: str = tagged("id", default="b")


@dataclass(frozen=True)
class Point:
    x: int = tagged("x")
    y: int = tagged("y")


@register_atomic
@dataclass
class Money:
    amount: int
    currency: str


@dataclass
class Wallet:
    balance: Money = tagged("balance")


@dataclass
class Empty:
    pass


@dataclass
class AllNone:
    a: Optional[str] = None
    b: Optional[int] = None


@dataclass
class AllExcluded:
    a: str = tagged("-", default="x")
    b: int = tagged("-", default=1)


@dataclass
class WithPrivate:
    public: str = "p"
    _private: str = "secret"


# ═══════════════════════════════════════════════════════════════════
#  §1  NAMING TAGS
# ═══════════════════════════════════════════════════════════════════

class TestParseTag:

    @pytest.mark.parametrize("tag,expected", [
        (None, ("ident", False, False)),
        ("", ("ident", False, False)),
        ("-", ("ident", True, False)),
        ("name", ("name", False, False)),
        ("name,omitempty", ("name", False, True)),
        (",omitempty", ("ident", False, True)),
        ("name,string", ("name", False, False)),
    ])
    def test_parse(self, tag, expected):
        assert parse_tag(tag, "ident") == expected


# ═══════════════════════════════════════════════════════════════════
#  §2  FIELD CATALOG
# ═══════════════════════════════════════════════════════════════════

class TestCatalog:

    def test_declaration_order(self):
        assert catalog(User).names() == ["name", "age", "email"]

    def test_external_names(self):
        assert catalog(Tagged).names() == ["user_name", "display", "plain", "note"]

    def test_excluded_slot_is_listed_but_not_included(self):
        cat = catalog(Tagged)
        assert len(cat) == 5
        assert [s.name for s in cat.slots if s.excluded] == ["password"]

    def test_private_slots_skipped(self):
        assert catalog(WithPrivate).names() == ["public"]

    def test_resolve(self):
        cat = catalog(Tagged)
        assert cat.resolve("user_name").name == "username"
        assert cat.resolve("username") is None
        assert cat.resolve("password") is None
        assert cat.resolve("missing") is None

    def test_collision_first_wins(self):
        assert catalog(Collision).resolve("id").name == "first"

    def test_nullability(self):
        cat = catalog(Company)
        nullable = {s.name: s.nullable for s in cat.slots}
        assert nullable == {
            "name": False, "ceo": True, "staff": False, "offices": False, "founded": True,
        }

    def test_default_none_is_nullable(self):
        @dataclass
        class Loose:
            value: int = None

        assert catalog(Loose).resolve("value").nullable

    def test_instance_and_type_share_cache(self):
        assert catalog(User) is catalog(User("a", 1, "e"))

    def test_non_record_rejected(self):
        with pytest.raises(TypeError):
            catalog(dict)

    def test_frozen_slot_set(self):
        p = Point(1, 2)
        catalog(p).resolve("x").set(p, 5)
        assert p.x == 5

    @pytest.mark.parametrize("hint,expected", [
        (Optional[int], True),
        (int | None, True),
        (Any, True),
        (int, False),
        (list[int], False),
        (int | str, False),
    ])
    def test_is_nullable(self, hint, expected):
        assert is_nullable(hint) is expected

    def test_unwrap_optional(self):
        assert unwrap_optional(Optional[int]) is int
        assert unwrap_optional(int) is int
        assert unwrap_optional(Optional[list[str]]) == list[str]


# ═══════════════════════════════════════════════════════════════════
#  §3  NORMALIZATION
# ═══════════════════════════════════════════════════════════════════

class TestToMapping:

    def test_basic(self):
        assert to_mapping(User("John", 30, "j@x.com")) == {
            "name": "John", "age": 30, "email": "j@x.com",
        }

    def test_zero_values_kept(self):
        assert to_mapping(User("", 0, "")) == {"name": "", "age": 0, "email": ""}

    def test_tags_exclusion_and_omitempty(self):
        t = Tagged(username="u", password="secret")
        assert to_mapping(t) == {"user_name": "u", "display": "", "plain": 0}

    def test_non_none_optional_included(self):
        t = Tagged(username="u", note="hi")
        assert to_mapping(t)["note"] == "hi"

    def test_nested_records(self):
        c = Company(
            name="Acme",
            ceo=User("Boss", 50, "b@acme.com"),
            staff=[User("A", 20, "a@acme.com")],
            offices={"hq": {"city": "NYC"}, "branch": User("Mgr", 40, "m@acme.com")},
        )
        assert to_mapping(c) == {
            "name": "Acme",
            "ceo": {"name": "Boss", "age": 50, "email": "b@acme.com"},
            "staff": [{"name": "A", "age": 20, "email": "a@acme.com"}],
            "offices": {
                "hq": {"city": "NYC"},
                "branch": {"name": "Mgr", "age": 40, "email": "m@acme.com"},
            },
        }

    def test_absent_nested_record_omitted(self):
        assert "ceo" not in to_mapping(Company(name="Acme"))

    def test_timestamps_unchanged(self):
        ts = datetime.datetime(2020, 1, 1, tzinfo=datetime.timezone.utc)
        assert to_mapping(Company(name="Acme", founded=ts))["founded"] is ts

    def test_mapping_keys_become_strings(self):
        assert normalize({1: "a", "b": {2: "c"}}) == {"1": "a", "b": {"2": "c"}}

    def test_tuples_become_lists(self):
        assert normalize({"t": (1, (2, 3))}) == {"t": [1, [2, 3]]}

    def test_mapping_input_is_copied(self):
        m = {"a": {"b": 1}}
        result = to_mapping(m)
        assert result == m
        assert result is not m
        assert result["a"] is not m["a"]

    def test_omission_law(self):
        for value in (Tagged("u"), Company("c"), AllNone()):
            result = to_mapping(value)
            for slot in catalog(value).included():
                present = slot.external in result
                assert present == (slot.get(value) is not None)

    @pytest.mark.parametrize("value", [Empty(), AllNone(), AllExcluded()])
    def test_empty_results(self, value):
        assert to_mapping(value) == {}

    def test_none(self):
        assert to_mapping(None) is None

    @pytest.mark.parametrize("value", [42, "text", [1, 2]])
    def test_non_composite_rejected(self, value):
        with pytest.raises(PatchTypeError):
            to_mapping(value)

    def test_private_slots_ignored(self):
        assert to_mapping(WithPrivate()) == {"public": "p"}


# ═══════════════════════════════════════════════════════════════════
#  §4  ATOMIC TYPES
# ═══════════════════════════════════════════════════════════════════

class TestAtomic:

    def test_registered_record_is_a_leaf(self):
        money = Money(5, "EUR")
        assert normalize({"m": money})["m"] is money

    def test_registered_record_replaced_whole(self):
        old = Wallet(Money(5, "EUR"))
        new = Wallet(Money(7, "EUR"))
        assert diff(old, new) == {"balance": Money(7, "EUR")}
        assert diff(old, Wallet(Money(5, "EUR"))) == {}


# ═══════════════════════════════════════════════════════════════════
#  §5  DELETION MARKER CONVERSION
# ═══════════════════════════════════════════════════════════════════

class TestNullable:

    def test_to_nullable(self):
        patch = {"a": DELETE, "b": 1, "c": {"d": DELETE, "e": None}}
        assert to_nullable(patch) == {"a": None, "b": 1, "c": {"d": None, "e": None}}

    def test_from_nullable(self):
        patch = {"a": None, "b": 1, "c": {"d": None, "e": [None]}}
        assert from_nullable(patch) == {"a": DELETE, "b": 1, "c": {"d": DELETE, "e": [None]}}

    def test_none_passthrough(self):
        assert to_nullable(None) is None
        assert from_nullable(None) is None

    def test_inputs_untouched(self):
        patch = {"a": DELETE, "c": {"d": DELETE}}
        to_nullable(patch)
        assert patch == {"a": DELETE, "c": {"d": DELETE}}

    def test_recovers_deletion_patch(self):
        patch = diff({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"c": 2}})
        assert from_nullable(to_nullable(patch)) == patch


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
