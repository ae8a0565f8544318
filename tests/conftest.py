"""
Test Suite Configuration
"""
from typing import Any, Dict, List

import pytest
import polars as pl

from dairy_analytics.data import DairyRecordGenerator
from dairy_analytics.ingestion import RecordLoader
from dairy_analytics.transformation import RecordCleaner


def _row(record_id, day, product_id, product_name, vendor_id, quantity, cost, **extra) -> Dict[str, Any]:
    vendors = {
        "V1": ("Alpha Dairy", "Pune"),
        "V2": ("Beta Farms", "Mumbai"),
    }
    vendor_name, location = vendors[vendor_id]
    row = {
        "Record_ID": record_id,
        "Date": day,
        "Product_ID": product_id,
        "Product_Name": product_name,
        "Brand": "Amul",
        "Quantity_Liters_KG": quantity,
        "Unit": "Liters",
        "Price_Per_Unit": 50.0,
        "Total_Cost": cost,
        "Vendor_ID": vendor_id,
        "Vendor_Name": vendor_name,
        "Location": location,
        "Season": "Winter",
        "Added_Sugar": "No",
        "Is_Organic": "No",
        "Return_Flag": "No",
        "Expiry_Date": None,
    }
    row.update(extra)
    return row


@pytest.fixture
def raw_rows() -> List[Dict[str, Any]]:
    """Raw rows with one duplicate key, one bad quantity and one missing brand"""
    return [
        _row(1, "2024-01-01", "P1", "Milk", "V1", "10", 500.0, Is_Organic="Yes", Expiry_Date="2024-01-04"),
        _row(2, "2024-01-01", "P1", "Milk", "V1", "12", 600.0),
        _row(3, "2024-01-02", "P1", "Milk", "V2", "8", 400.0, Return_Flag="Yes"),
        _row(4, "2024-01-01", "P2", "Curd", "V2", "5", 400.0, Added_Sugar="Yes", Return_Flag="Yes", Season="Summer"),
        _row(5, "2024-01-03", "P2", "Curd", "V1", "ten", 200.0, Brand=None),
    ]


@pytest.fixture
def raw_records_df(raw_rows) -> pl.DataFrame:
    """Raw rows as a DataFrame in the source table layout"""
    return pl.DataFrame(raw_rows, infer_schema_length=None)


@pytest.fixture
def loaded_records(raw_rows) -> pl.DataFrame:
    """Loaded, not yet cleaned, record frame"""
    return RecordLoader().load(raw_rows).records


@pytest.fixture
def cleaned_records(loaded_records) -> pl.DataFrame:
    """Deduplicated and normalized record frame"""
    return RecordCleaner().clean(loaded_records)


@pytest.fixture
def generated_raw_df() -> pl.DataFrame:
    """Synthetic dirty dataset"""
    return DairyRecordGenerator(seed=7).generate(n=300, duplicate_rate=0.1, dirty_rate=0.05)


@pytest.fixture
def generated_records(generated_raw_df) -> pl.DataFrame:
    """Synthetic dataset after loading"""
    return RecordLoader().load(generated_raw_df).records
