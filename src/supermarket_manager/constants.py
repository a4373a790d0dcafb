"""Enumerations and fixed values shared across the supermarket modules.

Keeps the storage layer, the ledgers, the services and the console surface
agreeing on a single source of truth for file names, the record delimiter and
the product categories.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


# Record format shared by every flat file.
FIELD_DELIMITER = ","
FILE_ENCODING = "utf-8"

DEFAULT_DATA_DIRECTORY = "data"
PRODUCTS_FILE = "products.txt"
SALES_FILE = "sales.txt"
DEFAULT_EXPORT_FILE = "reports.xlsx"

# Products at or below this many units are reported as low stock.
LOW_STOCK_THRESHOLD = 10


class Category(str, Enum):
    """Closed set of product categories.

    The member name is what gets written to disk; the value is the label shown
    to people.
    """

    GROCERIES = "Groceries"
    DAIRY = "Dairy Products"
    BAKERY = "Bakery"
    BEVERAGES = "Beverages"
    SNACKS = "Snacks"
    FROZEN = "Frozen Food"
    HOUSEHOLD = "Household Items"
    ELECTRONICS = "Electronics"
    OTHER = "Other"

    @classmethod
    def from_name(cls, value: str) -> Optional["Category"]:
        """Return the category whose name matches ``value``, or ``None``."""

        try:
            return cls[value.strip().upper()]
        except (KeyError, AttributeError):
            return None


__all__ = [
    "FIELD_DELIMITER",
    "FILE_ENCODING",
    "DEFAULT_DATA_DIRECTORY",
    "PRODUCTS_FILE",
    "SALES_FILE",
    "DEFAULT_EXPORT_FILE",
    "LOW_STOCK_THRESHOLD",
    "Category",
]
