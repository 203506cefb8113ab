from dataclasses import dataclass, field
from typing import Optional

import pytest

from apptoolkit.fieldmask import FieldMaskError, merge_with_mask


@dataclass
class ChildTest:
    field_one: int = 0
    field_two: str = ""
    field_three: Optional[int] = None
    field_four: list[int] = field(default_factory=list)


@dataclass
class TopTest:
    field_a: ChildTest = field(default_factory=ChildTest)
    field_b: Optional[ChildTest] = None


@pytest.fixture
def source():
    return TopTest(
        field_a=ChildTest(field_one=22, field_two="catch", field_three=2, field_four=[1, 2, 3]),
        field_b=ChildTest(field_one=3, field_two="string", field_three=1, field_four=[3, 2, 1]),
    )


def test_merge_selected_fields(source):
    dest = TopTest()
    merge_with_mask(
        source,
        dest,
        ["field_b.field_one", "field_a.field_two", "field_a.field_three", "field_b.field_four"],
    )
    assert dest == TopTest(
        field_a=ChildTest(field_two="catch", field_three=2),
        field_b=ChildTest(field_one=3, field_four=[3, 2, 1]),
    )
    assert source.field_b.field_two == "string"


def test_missing_field(source):
    with pytest.raises(FieldMaskError) as info:
        merge_with_mask(source, TopTest(), ["field_b.field_dne", "field_a.field_two"])
    assert str(info.value) == 'Field path "field_b.field_dne" doesn\'t exist in type TopTest'


def test_nil_source():
    with pytest.raises(FieldMaskError, match="^Source object is nil$"):
        merge_with_mask(None, TopTest(), ["field_b.field_dne"])


@pytest.mark.parametrize("mask", [None, []])
def test_empty_mask_is_noop(source, mask):
    dest = TopTest()
    merge_with_mask(None, None, mask)
    merge_with_mask(None, dest, mask)
    merge_with_mask(source, None, mask)
    merge_with_mask(source, dest.field_a, mask)
    assert dest == TopTest()


def test_nil_destination(source):
    with pytest.raises(FieldMaskError, match="^Destination object is nil$"):
        merge_with_mask(source, None, ["field_b"])


def test_type_mismatch(source):
    with pytest.raises(FieldMaskError, match="^Types of source and destination objects do not match$"):
        merge_with_mask(source, ChildTest(), ["field_b"])


def test_non_struct_path_is_skipped(source):
    dest = TopTest()
    merge_with_mask(source, dest, ["field_a.field_two", "field_a.field_four.anything"])
    assert dest == TopTest(field_a=ChildTest(field_two="catch"))


def test_whole_struct_is_copied(source):
    dest = TopTest()
    merge_with_mask(source, dest, ["field_b"])
    assert dest.field_b == source.field_b
    assert dest.field_b is not source.field_b