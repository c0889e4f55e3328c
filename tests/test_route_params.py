"""Tests for query-string decoding of attribute filters."""

from starlette.datastructures import QueryParams

from asset_metadata.routes.params import (
    VERSIONED_ATTRIBUTE_PREFIX,
    parse_attribute_filters,
)


def test_indexed_groups_are_ordered_by_index():
    params = QueryParams(
        "attr[1].namespace=b&attr[1].keys=x,y&attr[1].value=2&attr[1].op=OR"
        "&attr[0].namespace=a&attr[0].keys=model&attr[0].value=r640"
    )
    filters = parse_attribute_filters(params)

    assert [f.namespace for f in filters] == ["a", "b"]
    assert filters[1].keys == ["x", "y"]
    assert filters[1].attribute_operator == "OR"
    assert filters[0].attribute_operator == "AND"
    assert filters[0].operator == "eq"


def test_unindexed_fields_pair_by_position():
    params = QueryParams(
        "attr.namespace=a&attr.keys=k1&attr.value=v1"
        "&attr.namespace=b&attr.keys=k2&attr.value=v2"
    )
    filters = parse_attribute_filters(params)
    assert [(f.namespace, f.keys, f.value) for f in filters] == [
        ("a", ["k1"], "v1"),
        ("b", ["k2"], "v2"),
    ]


def test_prefixes_do_not_mix():
    params = QueryParams("attr[0].namespace=a&ver_attr[0].namespace=b")
    assert [f.namespace for f in parse_attribute_filters(params)] == ["a"]
    versioned = parse_attribute_filters(params, VERSIONED_ATTRIBUTE_PREFIX)
    assert [f.namespace for f in versioned] == ["b"]


def test_namespace_only_clause_has_no_value():
    filters = parse_attribute_filters(QueryParams("attr[0].namespace=a"))
    assert filters[0].keys == []
    assert filters[0].value is None


def test_unrelated_params_are_ignored():
    assert parse_attribute_filters(QueryParams("page=2&limit=10&name=x")) == []
