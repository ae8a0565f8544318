"""
Synthetic Dairy Data Generator

Generates realistic, deliberately dirty dairy transaction data for testing
and development. Includes:
- Vendors with names and coordinates
- Products with typical units, prices and composition
- "Yes"/"No" text flags as they arrive from spreadsheets
- Duplicate composite keys, malformed quantities and missing brands
"""

import random
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import polars as pl
from faker import Faker


# =============================================================================
# CONFIGURATION
# =============================================================================

# (product_id, name, unit, price range, fat %, snf %, protein %, shelf life days)
PRODUCTS: List[Tuple[str, str, str, Tuple[float, float], float, float, float, int]] = [
    ("P001", "Milk", "Liters", (45.0, 65.0), 4.5, 8.5, 3.3, 3),
    ("P002", "Curd", "Kg", (60.0, 90.0), 3.5, 9.0, 3.8, 7),
    ("P003", "Paneer", "Kg", (280.0, 420.0), 22.0, 12.0, 18.0, 10),
    ("P004", "Butter", "Kg", (450.0, 560.0), 80.0, 1.5, 0.9, 90),
    ("P005", "Ghee", "Liters", (550.0, 700.0), 99.5, 0.2, 0.1, 270),
    ("P006", "Cheese", "Kg", (400.0, 650.0), 28.0, 15.0, 24.0, 120),
    ("P007", "Lassi", "Liters", (70.0, 110.0), 2.5, 7.0, 2.9, 5),
    ("P008", "Ice Cream", "Liters", (180.0, 320.0), 10.0, 11.0, 3.5, 180),
]

BRANDS = ["Amul", "Mother Dairy", "Nandini", "Aavin", "Heritage", "Milma"]
SEASONS = ["Summer", "Monsoon", "Winter"]
SHIFTS = ["Morning", "Evening"]
PROCUREMENT_TYPES = ["Direct", "Cooperative", "Contract"]
PAYMENT_MODES = ["Cash", "UPI", "Bank Transfer", "Credit"]
DELIVERY_MODES = ["Home Delivery", "Store Pickup", "Distributor"]

COLUMNS = [
    "Record_ID", "Date", "Product_ID", "Product_Name", "Brand",
    "Quantity_Liters_KG", "Unit", "Price_Per_Unit", "Total_Cost",
    "Vendor_ID", "Vendor_Name", "Procurement_Type", "Payment_Mode",
    "Location", "Latitude", "Longitude", "Season", "Shift",
    "Fat_Content", "SNF_Content", "Protein_Content",
    "Added_Sugar", "Is_Organic", "Delivery_Mode", "Return_Flag", "Expiry_Date",
]


def season_for(day: date) -> str:
    """Indian dairy season for a calendar day"""
    if day.month in (3, 4, 5, 6):
        return "Summer"
    if day.month in (7, 8, 9, 10):
        return "Monsoon"
    return "Winter"


# =============================================================================
# GENERATOR
# =============================================================================

class DairyRecordGenerator:
    """
    Generate raw dairy records with the original table's column headers.

    Example:
        generator = DairyRecordGenerator(seed=7)
        raw = generator.generate(n=500, duplicate_rate=0.05)
        raw.write_csv("data/raw/dairy_records.csv")
    """

    def __init__(
        self,
        seed: int = 42,
        n_vendors: int = 20,
        start_date: Optional[date] = None,
        days: int = 365,
    ):
        self.random = random.Random(seed)
        self.rng = np.random.default_rng(seed)
        self.fake = Faker("en_IN")
        self.fake.seed_instance(seed)
        self.start_date = start_date or date(2024, 1, 1)
        self.days = days
        self.vendors = self._generate_vendors(n_vendors)

    def _generate_vendors(self, n: int) -> List[Dict[str, Any]]:
        """Generate vendor master data"""
        vendors = []
        for i in range(n):
            vendors.append({
                "Vendor_ID": f"V{i + 1:03d}",
                "Vendor_Name": self.fake.company(),
                "Location": self.fake.city(),
                "Latitude": round(float(self.rng.uniform(8.0, 32.0)), 6),
                "Longitude": round(float(self.rng.uniform(68.0, 90.0)), 6),
            })
        return vendors

    def _generate_record(self, record_id: int) -> Dict[str, Any]:
        product_id, name, unit, (low, high), fat, snf, protein, shelf_life = self.random.choice(PRODUCTS)
        vendor = self.random.choice(self.vendors)
        day = self.start_date + timedelta(days=int(self.rng.integers(0, self.days)))
        quantity = round(float(self.rng.uniform(5.0, 500.0)), 2)
        price = round(float(self.rng.uniform(low, high)), 2)

        return {
            "Record_ID": record_id,
            "Date": day,
            "Product_ID": product_id,
            "Product_Name": name,
            "Brand": self.random.choice(BRANDS),
            "Quantity_Liters_KG": f"{quantity:.2f}",
            "Unit": unit,
            "Price_Per_Unit": price,
            "Total_Cost": round(quantity * price, 2),
            **vendor,
            "Procurement_Type": self.random.choice(PROCUREMENT_TYPES),
            "Payment_Mode": self.random.choice(PAYMENT_MODES),
            "Season": season_for(day),
            "Shift": self.random.choice(SHIFTS),
            "Fat_Content": round(fat * float(self.rng.uniform(0.9, 1.1)), 2),
            "SNF_Content": round(snf * float(self.rng.uniform(0.9, 1.1)), 2),
            "Protein_Content": round(protein * float(self.rng.uniform(0.9, 1.1)), 2),
            "Added_Sugar": "Yes" if name in ("Lassi", "Ice Cream") and self.random.random() < 0.7 else "No",
            "Is_Organic": "Yes" if self.random.random() < 0.15 else "No",
            "Delivery_Mode": self.random.choice(DELIVERY_MODES),
            "Return_Flag": "Yes" if self.random.random() < 0.06 else "No",
            "Expiry_Date": day + timedelta(days=shelf_life) if self.random.random() > 0.03 else None,
        }

    def generate(
        self,
        n: int = 1000,
        duplicate_rate: float = 0.05,
        dirty_rate: float = 0.02,
    ) -> pl.DataFrame:
        """
        Generate n unique records plus injected duplicates.

        Args:
            n: Number of distinct transactions
            duplicate_rate: Share of transactions re-entered under a higher record id
            dirty_rate: Share of rows with a malformed quantity and a missing brand

        Returns:
            Raw DataFrame in the original table layout, rows shuffled
        """
        rows = [self._generate_record(record_id) for record_id in range(1, n + 1)]

        next_id = n + 1
        for original in self.random.sample(rows, int(n * duplicate_rate)):
            duplicate = dict(original)
            duplicate["Record_ID"] = next_id
            duplicate["Payment_Mode"] = self.random.choice(PAYMENT_MODES)
            rows.append(duplicate)
            next_id += 1

        for row in self.random.sample(rows, int(len(rows) * dirty_rate)):
            row["Quantity_Liters_KG"] = f"{row['Quantity_Liters_KG']} {row['Unit'].lower()}"
            row["Brand"] = None

        self.random.shuffle(rows)
        return pl.DataFrame(rows, infer_schema_length=None).select(COLUMNS)
