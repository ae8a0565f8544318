"""
Unit Tests - Record Cleaning
"""
from datetime import date

import pytest
import polars as pl
from polars.testing import assert_frame_equal

from dairy_analytics.analytics import group_sum
from dairy_analytics.ingestion import RecordLoader
from dairy_analytics.models import FlagKind, RawFlag, normalize_flag
from dairy_analytics.transformation import RecordCleaner, clean_records


class TestRawFlag:
    """Tests for the raw flag variant"""

    @pytest.mark.parametrize(
        "value, kind",
        [(True, FlagKind.CANONICAL), ("Yes", FlagKind.RAW_STRING), (None, FlagKind.MISSING)],
    )
    def test_classification(self, value, kind):
        """Test raw values are tagged by representation"""
        assert RawFlag.of(value).kind == kind

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Yes", True),
            ("yes", False),
            ("YES", False),
            ("No", False),
            ("true", False),
            ("", False),
            (None, False),
            (True, False),
            (False, False),
        ],
    )
    def test_normalize_flag(self, value, expected):
        """Test only the exact truthy token maps to True"""
        assert normalize_flag(value) is expected

    def test_custom_truthy_token(self):
        """Test the truthy token is configurable"""
        assert normalize_flag("Y", truthy_token="Y") is True
        assert normalize_flag("Yes", truthy_token="Y") is False

    def test_as_text(self):
        """Test text rendering used by the loader"""
        assert RawFlag.of(True).as_text() == "true"
        assert RawFlag.of(False).as_text() == "false"
        assert RawFlag.of("Yes").as_text() == "Yes"
        assert RawFlag.of(None).as_text() is None


class TestDeduplicate:
    """Tests for composite-key deduplication"""

    def test_smallest_id_survives(self):
        """Test two records sharing a key keep only the first id"""
        records = RecordLoader().load([
            {"record_id": 1, "date": "2024-01-01", "product_id": "P1", "vendor_id": "V1", "total_cost": 10},
            {"record_id": 2, "date": "2024-01-01", "product_id": "P1", "vendor_id": "V1", "total_cost": 20},
        ]).records

        cleaned = RecordCleaner().clean(records)

        assert cleaned["record_id"].to_list() == [1]
        sums = group_sum(cleaned, "product_id", "total_cost")
        assert dict(zip(sums["product_id"].to_list(), sums["total_cost"].to_list())) == {"P1": 10.0}

    def test_min_id_wins_regardless_of_position(self):
        """Test the survivor is the smallest id, not the first row"""
        df = pl.DataFrame({
            "record_id": [3, 7, 1, 2],
            "product_id": ["P1", "P2", "P1", "P1"],
            "date": [date(2024, 1, 1)] * 4,
            "vendor_id": ["V1"] * 4,
        })

        result = RecordCleaner().deduplicate(df)

        assert result["record_id"].to_list() == [7, 1]

    def test_relative_order_preserved(self, loaded_records):
        """Test surviving rows keep their input order"""
        result = RecordCleaner().deduplicate(loaded_records)

        assert result["record_id"].to_list() == [1, 3, 4, 5]

    def test_distinct_keys_untouched(self):
        """Test records differing in any key component all survive"""
        df = pl.DataFrame({
            "record_id": [1, 2, 3, 4],
            "product_id": ["P1", "P2", "P1", "P1"],
            "date": [date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 1)],
            "vendor_id": ["V1", "V1", "V1", "V2"],
        })

        assert RecordCleaner().deduplicate(df).height == 4

    def test_null_key_components_group_together(self):
        """Test null key parts are treated as one value"""
        df = pl.DataFrame({
            "record_id": [5, 4],
            "product_id": pl.Series([None, None], dtype=pl.Utf8),
            "date": [date(2024, 1, 1)] * 2,
            "vendor_id": ["V1", "V1"],
        })

        assert RecordCleaner().deduplicate(df)["record_id"].to_list() == [4]

    def test_custom_key(self):
        """Test a caller-supplied key"""
        df = pl.DataFrame({
            "record_id": [1, 2, 3],
            "product_id": ["P1", "P1", "P2"],
            "date": [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)],
            "vendor_id": ["V1", "V2", "V3"],
        })

        result = RecordCleaner().deduplicate(df, key_fields=["product_id"])

        assert result["record_id"].to_list() == [1, 3]

    def test_minimality_on_generated_data(self, generated_records):
        """Test exactly one record per key survives and it has the minimum id"""
        key = ["product_id", "date", "vendor_id"]
        expected = generated_records.group_by(key).agg(pl.col("record_id").min())

        result = RecordCleaner().deduplicate(generated_records)

        assert result.height == expected.height
        assert result.select(key).is_duplicated().sum() == 0
        assert sorted(result["record_id"].to_list()) == sorted(expected["record_id"].to_list())


class TestNormalizeFlags:
    """Tests for flag normalization"""

    def test_raw_strings(self):
        """Test raw strings map to booleans"""
        df = pl.DataFrame({"return_flag": ["Yes", "No", None, "yes", "true", "1"]})

        result = RecordCleaner().normalize_flags(df, fields=["return_flag"])

        assert result.schema["return_flag"] == pl.Boolean
        assert result["return_flag"].to_list() == [True, False, False, False, False, False]

    def test_boolean_column_untouched(self):
        """Test already normalized columns are kept"""
        df = pl.DataFrame({"return_flag": [True, False, None]})

        result = RecordCleaner().normalize_flags(df, fields=["return_flag"])

        assert result["return_flag"].to_list() == [True, False, None]

    def test_missing_flag_column_added(self):
        """Test absent flag fields become all False"""
        df = pl.DataFrame({"record_id": [1, 2]})

        result = RecordCleaner().normalize_flags(df)

        for name in ["added_sugar", "is_organic", "return_flag"]:
            assert result[name].to_list() == [False, False]

    def test_loaded_canonical_true_becomes_false(self, raw_rows):
        """Test a source boolean True is not the truthy token"""
        raw_rows[0]["Return_Flag"] = True

        records = RecordLoader().load(raw_rows).records
        result = RecordCleaner().normalize_flags(records)

        assert result["return_flag"][0] is False

    def test_custom_truthy_token(self):
        """Test the cleaner honours a configured token"""
        df = pl.DataFrame({"is_organic": ["Y", "Yes", "N"]})

        result = RecordCleaner(truthy_token="Y").normalize_flags(df, fields=["is_organic"])

        assert result["is_organic"].to_list() == [True, False, False]


class TestRecordCleaner:
    """Tests for the full cleaning pass"""

    def test_clean(self, loaded_records):
        """Test cleaning deduplicates and normalizes"""
        result = RecordCleaner().clean(loaded_records)

        assert result["record_id"].to_list() == [1, 3, 4, 5]
        assert result["return_flag"].to_list() == [False, True, True, False]
        assert result["added_sugar"].to_list() == [False, False, True, False]
        assert result["is_organic"].to_list() == [True, False, False, False]

    def test_clean_is_idempotent(self, generated_records):
        """Test cleaning twice equals cleaning once"""
        cleaner = RecordCleaner()
        once = cleaner.clean(generated_records)

        assert_frame_equal(cleaner.clean(once), once)

    def test_clean_with_stats(self, loaded_records):
        """Test cleaning statistics"""
        _, stats = RecordCleaner().clean_with_stats(loaded_records)

        assert stats.total_rows == 5
        assert stats.rows_after_cleaning == 4
        assert stats.duplicates_removed == 1
        assert stats.flags_set_true == {"added_sugar": 1, "is_organic": 1, "return_flag": 2}
        assert stats.rules_applied == ["deduplicate", "normalize_flags"]

    def test_register_rule(self, loaded_records):
        """Test custom rules run after the built-in ones"""
        cleaner = RecordCleaner()
        cleaner.register_rule(
            "uppercase_products",
            lambda df: df.with_columns(pl.col("product_name").str.to_uppercase()),
        )

        result, stats = cleaner.clean_with_stats(loaded_records)

        assert stats.rules_applied[-1] == "uppercase_products"
        assert set(result["product_name"].to_list()) == {"MILK", "CURD"}

    def test_clean_does_not_mutate_input(self, loaded_records):
        """Test the input frame is left unchanged"""
        before = loaded_records.clone()

        clean_records(loaded_records)

        assert_frame_equal(loaded_records, before)

    def test_clean_empty(self):
        """Test cleaning an empty record frame"""
        records = RecordLoader().load([]).records

        result = RecordCleaner().clean(records)

        assert result.height == 0
        assert result.schema["return_flag"] == pl.Boolean
