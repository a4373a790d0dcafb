"""Presentation of the inventory and sales aggregates.

Text renderers feed the console surface; :func:`export_workbook` writes the
same information to an Excel workbook so it can be shared outside the
application. Nothing here reads from the ledgers: callers pass snapshots in.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import openpyxl
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from . import log
from .data_manager import Inventory, Product, Sale, SalesSummary


SHEET_COLUMNS: Mapping[str, Sequence[str]] = {
    "Inventory": [
        "ProductID",
        "ProductName",
        "Category",
        "Price",
        "QuantityInStock",
        "StockValue",
        "Status",
    ],
    "Sales": [
        "SaleID",
        "Timestamp",
        "ProductID",
        "ProductName",
        "Quantity",
        "PricePerUnit",
        "TotalAmount",
    ],
    "Summary": ["Metric", "Value"],
}


def format_money(amount: Decimal) -> str:
    return f"${amount:.2f}"


def stock_status(product: Product, threshold: int) -> str:
    if product.quantity_in_stock == 0:
        return "OUT OF STOCK"
    if product.quantity_in_stock <= threshold:
        return "LOW STOCK"
    return "OK"


def render_inventory_report(inventory: Inventory) -> str:
    lines = [
        "=== INVENTORY SUMMARY ===",
        f"Total Products: {inventory.total_products}",
        f"Total Inventory Value: {format_money(inventory.total_value)}",
        f"Low Stock Items: {len(inventory.low_stock_products)}",
        f"Out of Stock Items: {len(inventory.out_of_stock_products)}",
    ]
    if inventory.low_stock_products:
        lines.extend(["", "--- Low Stock Products ---"])
        lines.extend(f"{product.name}: {product.quantity_in_stock} units" for product in inventory.low_stock_products)
    if inventory.out_of_stock_products:
        lines.extend(["", "--- Out of Stock Products ---"])
        lines.extend(f"{product.name}: OUT OF STOCK" for product in inventory.out_of_stock_products)
    return "\n".join(lines)


def render_sales_report(summary: SalesSummary) -> str:
    lines = [
        "=== SALES REPORT ===",
        f"Total Sales: {summary.total_sales}",
        f"Total Revenue: {format_money(summary.total_revenue)}",
        "",
        f"Today's Sales: {summary.today_sales}",
        f"Today's Revenue: {format_money(summary.today_revenue)}",
    ]
    if summary.recent_today:
        lines.extend(["", "--- Recent Sales (Today) ---"])
        lines.extend(
            f"{sale.formatted_date()} | {sale.product_name} x{sale.quantity} = {format_money(sale.total_amount)}"
            for sale in summary.recent_today
        )
    lines.extend(["", "--- Top Selling Products ---"])
    lines.extend(
        f"{rank}. {name} - {units} units sold"
        for rank, (name, units) in enumerate(summary.top_products, start=1)
    )
    return "\n".join(lines)


def render_low_stock_alert(inventory: Inventory) -> str:
    """Return the alert text, or an empty string when nothing needs restocking."""

    lines = []
    if inventory.out_of_stock_products:
        lines.append("OUT OF STOCK:")
        lines.extend(f"! {product.name} ({product.product_id}) - OUT OF STOCK" for product in inventory.out_of_stock_products)
    if inventory.low_stock_products:
        if lines:
            lines.append("")
        lines.append(f"LOW STOCK (at or below {inventory.low_stock_threshold} units):")
        lines.extend(
            f"  {product.name} ({product.product_id}) - {product.quantity_in_stock} units"
            for product in inventory.low_stock_products
        )
    return "\n".join(lines)


def _write_header(sheet: Worksheet, columns: Sequence[str]) -> None:
    bold_font = Font(bold=True)
    for col_idx, column_name in enumerate(columns, 1):
        cell = sheet.cell(row=1, column=col_idx)
        cell.value = column_name
        cell.font = bold_font


def export_workbook(
    destination: Path,
    inventory: Inventory,
    products: Iterable[Product],
    sales: Iterable[Sale],
    summary: SalesSummary,
) -> Path:
    """Write inventory, sales and summary sheets to an ``.xlsx`` workbook.

    Monetary values are written as :class:`~decimal.Decimal` so Excel keeps
    their precision. Parent directories are created on demand and an existing
    file at ``destination`` is replaced.

    Args:
        destination (Path): Target workbook path.
        inventory (Inventory): Stock aggregate for the summary sheet.
        products (Iterable[Product]): Snapshot of every product.
        sales (Iterable[Sale]): Snapshot of every sale, most recent first.
        summary (SalesSummary): Sales aggregate for the summary sheet.

    Returns:
        Path: The resolved path of the written workbook.
    """

    wb = openpyxl.Workbook()
    if "Sheet" in wb.sheetnames:
        del wb["Sheet"]

    sheets = {}
    for sheet_name, columns in SHEET_COLUMNS.items():
        sheets[sheet_name] = wb.create_sheet(title=sheet_name)
        _write_header(sheets[sheet_name], columns)

    for product in products:
        sheets["Inventory"].append([
            product.product_id,
            product.name,
            product.category.value,
            product.price,
            product.quantity_in_stock,
            product.stock_value,
            stock_status(product, inventory.low_stock_threshold),
        ])

    for sale in sales:
        sheets["Sales"].append([
            sale.sale_id,
            sale.formatted_date(),
            sale.product_id,
            sale.product_name,
            sale.quantity,
            sale.price_per_unit,
            sale.total_amount,
        ])

    for metric, value in (
        ("Total Products", inventory.total_products),
        ("Total Inventory Value", inventory.total_value),
        ("Low Stock Items", len(inventory.low_stock_products)),
        ("Out of Stock Items", len(inventory.out_of_stock_products)),
        ("Total Sales", summary.total_sales),
        ("Total Revenue", summary.total_revenue),
        ("Today's Sales", summary.today_sales),
        ("Today's Revenue", summary.today_revenue),
    ):
        sheets["Summary"].append([metric, value])

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    wb.save(dest)
    log.info("Exported reports workbook to '%s'", dest)
    return dest
