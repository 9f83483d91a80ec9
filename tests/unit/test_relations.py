"""Tests for relation selection and the support checks."""

from __future__ import annotations

import pytest

from crud_adapter import UnsupportedOperationError
from crud_adapter.relations import (
    check_multi_record_relations,
    check_single_record_relations,
    iter_requested_relations,
)


def _names(mapper, opts):
    return [(relation.local_field, sub["with"]) for relation, sub in
            iter_requested_relations(mapper, opts)]


class TestIterRequestedRelations:
    def test_nothing_requested(self, user_mapper):
        assert _names(user_mapper, {}) == []
        assert _names(user_mapper, {"with": []}) == []

    def test_by_relation_name_or_local_field(self, user_mapper):
        assert _names(user_mapper, {"with": ["post"]}) == [("posts", [])]
        assert _names(user_mapper, {"with": ["profile", "organization"]}) == [
            ("profile", []),
            ("organization", []),
        ]

    def test_nested_paths_are_forwarded(self, user_mapper):
        assert _names(user_mapper, {"with": ["posts.comments", "posts.user"]}) == [
            ("posts", ["comments", "user"]),
        ]

    def test_with_all(self, user_mapper):
        assert [name for name, _ in _names(user_mapper, {"with_all": True})] == [
            "posts",
            "profile",
            "organization",
        ]

    def test_sub_options(self, user_mapper):
        operators = {"in": object()}

        [(_, sub_opts)] = iter_requested_relations(
            user_mapper, {"with": ["posts"], "operators": operators, "raw": True, "kind": "x"}
        )

        assert sub_opts == {"raw": False, "with": [], "operators": operators}


class TestSupportChecks:
    @pytest.mark.parametrize(
        ("requested", "message"),
        [
            ("tags", "find with hasMany & localKeys not supported!"),
            ("taggings", "find with hasMany & foreignKeys not supported!"),
        ],
    )
    def test_single_record_rejects_key_list_relations(self, post_mapper, requested, message):
        with pytest.raises(UnsupportedOperationError, match=message):
            check_single_record_relations(post_mapper, {"with": [requested]})

    def test_single_record_only_inspects_requested_relations(self, post_mapper):
        check_single_record_relations(post_mapper, {"with": ["user", "comments"]})

    @pytest.mark.parametrize(
        ("requested", "message"),
        [
            ("user", "findAll with belongsTo not supported!"),
            ("comments", "findAll with hasMany not supported!"),
            ("tags", "findAll with hasMany & localKeys not supported!"),
            ("taggings", "findAll with hasMany & foreignKeys not supported!"),
        ],
    )
    def test_multi_record_rejects_every_relation(self, post_mapper, requested, message):
        with pytest.raises(UnsupportedOperationError, match=message):
            check_multi_record_relations(post_mapper, {"with": [requested]})

    def test_multi_record_has_one(self, user_mapper):
        with pytest.raises(UnsupportedOperationError, match="findAll with hasOne"):
            check_multi_record_relations(user_mapper, {"with": ["profile"]})

    def test_multi_record_without_request(self, post_mapper):
        check_multi_record_relations(post_mapper, {})
