"""Tests for header sanitization and schema building."""

import pytest

from datastore.schema import MAX_COLUMN_LENGTH, build_schema, sanitize_name

LONG_NAME = "extra_long_column_name_with_tons_of_characters_that_will_never_fit"
TRUNCATED = "extra_long_column_name_with_tons_of_characters_that_will_ne"


class TestSanitizeName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("column name with spaces in it", "column_name_with_spaces_in_it"),
            ("Bill_ID", "bill_id"),
            ("  padded\tand\n tabbed  ", "padded_and_tabbed"),
            ("Product1 revenue ($)", "product1_revenue"),
            ("a--b..c", "a_b_c"),
            ("Café", "caf"),
            ("\ufeffcountry", "country"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert sanitize_name(raw) == expected

    def test_empty_falls_back(self):
        assert sanitize_name("  !!  ") == "column"


class TestBuildSchema:
    def test_preserves_order_and_defaults_to_text(self):
        schema = build_schema(["Country", "Population", "ID"])
        assert list(schema) == ["country", "population", "id"]
        assert set(schema.values()) == {"text"}

    def test_long_name_truncated_with_index_suffix(self):
        schema = build_schema(["id", "name", LONG_NAME])
        assert list(schema)[2] == TRUNCATED + "_0"
        assert len(list(schema)[2]) <= MAX_COLUMN_LENGTH

    def test_long_names_sharing_a_prefix_are_numbered_in_order(self):
        schema = build_schema([LONG_NAME, "x", LONG_NAME + "_either", LONG_NAME + "_too"])
        assert list(schema) == [TRUNCATED + "_0", "x", TRUNCATED + "_1", TRUNCATED + "_2"]

    def test_name_at_the_bound_is_kept(self):
        name = "a" * MAX_COLUMN_LENGTH
        assert list(build_schema([name])) == [name]

    def test_duplicates_are_numbered_from_zero(self):
        schema = build_schema(["Name", "id", "name", "NAME "])
        assert list(schema) == ["name_0", "id", "name_1", "name_2"]

    def test_suffix_skips_names_already_taken(self):
        schema = build_schema(["a_1", "a", "a"])
        assert list(schema) == ["a_1", "a_0", "a_2"]

    def test_deduplicated_names_stay_within_bound(self):
        name = "b" * MAX_COLUMN_LENGTH
        names = list(build_schema([name, name]))
        stem = "b" * (MAX_COLUMN_LENGTH - 2)
        assert names == [stem + "_0", stem + "_1"]
        assert all(len(n) <= MAX_COLUMN_LENGTH for n in names)

    def test_field_count_matches_header(self):
        header = ["", "", "a", "A", "a b", "a_b"]
        schema = build_schema(header)
        assert len(schema) == len(header)
        assert list(schema) == ["column_0", "column_1", "a_0", "a_1", "a_b_0", "a_b_1"]
