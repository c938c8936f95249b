"""Tests for ability parsing and matching."""

import pytest

from python_w3up.capabilities import (
    TOP,
    SpaceAbility,
    Store,
    Upload,
    Voucher,
    ability_matches,
    capability_matches,
    parse_ability,
)
from python_w3up.errors import UnknownAbilityError


def test_parse_known_abilities():
    """Test that known ability strings map to their enum members."""
    assert parse_ability("store/add") is Store.ADD
    assert parse_ability("upload/list") is Upload.LIST
    assert parse_ability("space/info") is SpaceAbility.INFO
    assert parse_ability("voucher/claim") is Voucher.CLAIM
    assert parse_ability(Store.REMOVE) is Store.REMOVE
    assert parse_ability("*") == TOP


@pytest.mark.parametrize("value", ["store/put", "blob/add", "store", "", "upload/*/x"])
def test_parse_unknown_ability(value):
    """Test that unknown abilities fail locally."""
    with pytest.raises(UnknownAbilityError):
        parse_ability(value)


def test_unknown_ability_is_value_error():
    with pytest.raises(ValueError, match="Unknown ability"):
        parse_ability("nope/nope")


@pytest.mark.parametrize(
    "granted,requested,expected",
    [
        ("*", "store/add", True),
        ("store/*", "store/add", True),
        ("store/*", "upload/add", False),
        ("store/add", "store/add", True),
        ("store/add", "store/remove", False),
        (Store.ADD, "store/add", True),
        ("upload/add", Upload.ADD, True),
    ],
)
def test_ability_matches(granted, requested, expected):
    assert ability_matches(granted, requested) is expected


def test_capability_matches_resource():
    """Test that a resource filter requires the capability to be on that resource."""
    cap = {"can": "store/*", "with": "did:key:zSpace"}

    assert capability_matches(cap, ["store/add"])
    assert capability_matches(cap, ["store/add"], resource="did:key:zSpace")
    assert not capability_matches(cap, ["store/add"], resource="did:key:zOther")
    assert not capability_matches(cap, ["upload/add"])
    assert capability_matches(cap, ["upload/add", "store/list"])
