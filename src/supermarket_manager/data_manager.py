"""Data definitions and record codec for the supermarket ledgers.

This module owns everything that describes *what* is stored, leaving *where*
to :mod:`supermarket_manager.storage` and *how it changes* to the ledgers and
services. Its public API covers three responsibilities:

1. Configuration handling: finding and parsing ``supermarket.ini``.
2. Records: the immutable :class:`Product` and :class:`Sale` dataclasses,
   plus the :class:`Inventory` and :class:`SalesSummary` report aggregates.
3. Codec: converting records to and from comma-delimited lines.
"""


from __future__ import annotations

import configparser
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Sequence, Tuple

from . import log
from .constants import (
    DEFAULT_DATA_DIRECTORY,
    DEFAULT_EXPORT_FILE,
    FIELD_DELIMITER,
    LOW_STOCK_THRESHOLD,
    PRODUCTS_FILE,
    SALES_FILE,
    Category,
)


CONFIG_FILE_NAME = "supermarket.ini"
PRODUCT_FIELD_COUNT = 5
SALE_FIELD_COUNT = 6
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``supermarket.ini`` settings."""

    data_directory: Path
    products_file: str = PRODUCTS_FILE
    sales_file: str = SALES_FILE
    low_stock_threshold: int = LOW_STOCK_THRESHOLD
    export_file: str = DEFAULT_EXPORT_FILE

    @property
    def export_path(self) -> Path:
        return self.data_directory / self.export_file


@dataclass(frozen=True)
class Product:
    """A catalog entry together with its current stock level."""

    product_id: str
    name: str
    category: Category
    price: Decimal
    quantity_in_stock: int

    def is_valid(self) -> bool:
        return (
            bool(self.product_id.strip())
            and bool(self.name.strip())
            and self.price.is_finite()
            and self.price > 0
            and self.quantity_in_stock >= 0
        )

    def with_quantity(self, quantity: int) -> "Product":
        return replace(self, quantity_in_stock=quantity)

    @property
    def stock_value(self) -> Decimal:
        return self.price * self.quantity_in_stock

    def to_line(self) -> str:
        return serialize_product(self)

    @classmethod
    def from_line(cls, line: str) -> Optional["Product"]:
        return deserialize_product(line)


@dataclass(frozen=True)
class Sale:
    """A single sale, snapshotting the product name and price at sale time."""

    sale_id: str
    product_id: str
    product_name: str
    quantity: int
    price_per_unit: Decimal
    timestamp: int

    @property
    def total_amount(self) -> Decimal:
        return self.price_per_unit * self.quantity

    @property
    def occurred_at(self) -> datetime:
        """Local, timezone-aware moment of the sale."""

        return (EPOCH + timedelta(milliseconds=self.timestamp)).astimezone()

    def formatted_date(self) -> str:
        return self.occurred_at.strftime("%Y-%m-%d %H:%M:%S")

    def to_line(self) -> str:
        return serialize_sale(self)

    @classmethod
    def from_line(cls, line: str) -> Optional["Sale"]:
        return deserialize_sale(line)


@dataclass(frozen=True)
class Inventory:
    """Point-in-time stock aggregate. Recomputed on demand, never stored."""

    total_products: int
    total_value: Decimal
    low_stock_products: Tuple[Product, ...]
    out_of_stock_products: Tuple[Product, ...]
    low_stock_threshold: int = LOW_STOCK_THRESHOLD


@dataclass(frozen=True)
class SalesSummary:
    """Point-in-time sales aggregate backing the sales report."""

    total_sales: int
    total_revenue: Decimal
    today_sales: int
    today_revenue: Decimal
    recent_today: Tuple[Sale, ...]
    top_products: Tuple[Tuple[str, int], ...]


def to_epoch_millis(moment: datetime) -> int:
    """Convert an aware datetime into whole milliseconds since the epoch."""

    return (moment - EPOCH) // timedelta(milliseconds=1)


def find_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Locate the optional configuration file.

    If the caller provides ``explicit_path`` it is returned without any
    verification so a deliberately non-standard location can be targeted.
    Otherwise the search walks up from the current working directory toward
    the filesystem root and returns the first ``CONFIG_FILE_NAME`` found.

    Args:
        explicit_path (Path | None): Optional path to use instead of searching.

    Returns:
        Path | None: The configuration file, or ``None`` when no file exists
            and defaults should apply.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    log.info("No %s found; using default settings", CONFIG_FILE_NAME)
    return None


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load an INI file and return the populated ``ConfigParser``.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion
            and resolution.
    """

    config_path = config_path.expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into :class:`ConfigSettings`.

    Every option is optional. A relative ``DataDirectory`` is anchored at
    ``base_path`` (normally the folder holding the configuration file) or the
    current working directory when no base is given.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Anchor for a relative data directory.

    Returns:
        ConfigSettings: Immutable settings with an absolute data directory.

    Raises:
        ValueError: If ``LowStockThreshold`` is not a non-negative integer.
    """

    data_directory_raw = parser.get("Storage", "DataDirectory", fallback=DEFAULT_DATA_DIRECTORY)
    products_file = parser.get("Storage", "ProductsFile", fallback=PRODUCTS_FILE)
    sales_file = parser.get("Storage", "SalesFile", fallback=SALES_FILE)
    export_file = parser.get("Reports", "ExportFile", fallback=DEFAULT_EXPORT_FILE)
    threshold = parser.getint("Reports", "LowStockThreshold", fallback=LOW_STOCK_THRESHOLD)
    if threshold < 0:
        raise ValueError(f"LowStockThreshold must not be negative: {threshold}")

    data_directory = Path(data_directory_raw).expanduser()
    if not data_directory.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_directory = (base_path / data_directory).resolve()

    return ConfigSettings(
        data_directory=data_directory,
        products_file=products_file,
        sales_file=sales_file,
        low_stock_threshold=threshold,
        export_file=export_file,
    )


def load_settings(config_path: Optional[Path] = None, *, data_directory: Optional[Path] = None) -> ConfigSettings:
    """Resolve settings from an optional config file plus a directory override.

    Args:
        config_path (Path | None): Explicit configuration file. When omitted
            the upward search of :func:`find_config_file` is used.
        data_directory (Path | None): Overrides ``DataDirectory`` when given.

    Returns:
        ConfigSettings: Effective settings for this run.
    """

    located = find_config_file(config_path)
    if located is None:
        settings = parse_settings(configparser.ConfigParser())
    else:
        resolved = Path(located).expanduser().resolve()
        settings = parse_settings(read_config(resolved), base_path=resolved.parent)
        log.info("Loaded settings from '%s'", resolved)

    if data_directory is not None:
        settings = replace(settings, data_directory=Path(data_directory).expanduser().resolve())
    return settings


def _join_fields(fields: Sequence[object]) -> str:
    values = [str(field) for field in fields]
    if any(FIELD_DELIMITER in value for value in values):
        # The format has no escaping; this row will not survive a reload.
        log.warning("Field contains the delimiter %r and will corrupt the row: %s", FIELD_DELIMITER, values)
    return FIELD_DELIMITER.join(values)


def _parse_decimal(raw: str) -> Decimal:
    value = Decimal(raw)
    if not value.is_finite():
        raise ValueError(f"Non-finite decimal: {raw}")
    return value


def serialize_product(record: Product) -> str:
    """Convert a product into ``id,name,CATEGORY,price,quantity``."""

    return _join_fields([
        record.product_id,
        record.name,
        record.category.name,
        record.price,
        record.quantity_in_stock,
    ])


def serialize_sale(record: Sale) -> str:
    """Convert a sale into ``id,productId,productName,quantity,price,timestamp``."""

    return _join_fields([
        record.sale_id,
        record.product_id,
        record.product_name,
        record.quantity,
        record.price_per_unit,
        record.timestamp,
    ])


def deserialize_product(line: str) -> Optional[Product]:
    """Parse a product line, returning ``None`` for anything malformed.

    A line is rejected when it does not split into exactly five fields, when
    the category name is unknown, or when price or quantity fail numeric
    conversion.

    Args:
        line (str): Raw line read from the products file.

    Returns:
        Product | None: The decoded record, or ``None``.
    """

    parts = line.split(FIELD_DELIMITER)
    if len(parts) != PRODUCT_FIELD_COUNT:
        return None

    product_id, name, category_raw, price_raw, quantity_raw = parts
    category = Category.from_name(category_raw)
    if category is None:
        return None
    try:
        price = _parse_decimal(price_raw)
        quantity = int(quantity_raw)
    except (InvalidOperation, ValueError):
        return None

    return Product(
        product_id=product_id,
        name=name,
        category=category,
        price=price,
        quantity_in_stock=quantity,
    )


def deserialize_sale(line: str) -> Optional[Sale]:
    """Parse a sale line, returning ``None`` for anything malformed.

    Args:
        line (str): Raw line read from the sales file.

    Returns:
        Sale | None: The decoded record, or ``None`` when the field count is
            wrong or quantity, price or timestamp are not numeric.
    """

    parts = line.split(FIELD_DELIMITER)
    if len(parts) != SALE_FIELD_COUNT:
        return None

    sale_id, product_id, product_name, quantity_raw, price_raw, timestamp_raw = parts
    try:
        quantity = int(quantity_raw)
        price = _parse_decimal(price_raw)
        timestamp = int(timestamp_raw)
    except (InvalidOperation, ValueError):
        return None

    return Sale(
        sale_id=sale_id,
        product_id=product_id,
        product_name=product_name,
        quantity=quantity,
        price_per_unit=price,
        timestamp=timestamp,
    )
