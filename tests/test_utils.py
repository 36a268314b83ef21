"""
Tests for the common utilities
"""

# Local
from myapp_operator import utils

## apply_merge_patch ###########################################################


def test_apply_merge_patch_deep_merge():
    """Make sure nested dicts merge and the base is not modified"""
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    res = utils.apply_merge_patch(base, {"a": {"b": 10}, "e": 4})
    assert res == {"a": {"b": 10, "c": 2}, "d": 3, "e": 4}
    assert base == {"a": {"b": 1, "c": 2}, "d": 3}


def test_apply_merge_patch_null_removes():
    """Make sure a None value removes the key"""
    assert utils.apply_merge_patch({"a": 1, "b": 2}, {"a": None}) == {"b": 2}


def test_apply_merge_patch_lists_replaced():
    """Make sure lists are replaced wholesale"""
    res = utils.apply_merge_patch({"l": [1, 2, 3]}, {"l": [4]})
    assert res == {"l": [4]}


def test_apply_merge_patch_dict_over_scalar():
    """Make sure a dict patch over a scalar replaces it"""
    assert utils.apply_merge_patch({"a": 1}, {"a": {"b": None, "c": 2}}) == {
        "a": {"c": 2}
    }


## nested_get ##################################################################


def test_nested_get():
    """Make sure missing and None intermediate keys yield the default"""
    dct = {"a": {"b": 1}, "n": None}
    assert utils.nested_get(dct, "a.b") == 1
    assert utils.nested_get(dct, "a.x", "dflt") == "dflt"
    assert utils.nested_get(dct, "x.y") is None
    assert utils.nested_get(dct, "n.y", 5) == 5


def test_timestamp_now():
    """Make sure timestamps carry a UTC offset"""
    assert utils.timestamp_now().endswith("+00:00")
