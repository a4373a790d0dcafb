"""Integration tests exercising storage, ledgers, services and console together."""

from __future__ import annotations

import configparser
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List

import pytest

from supermarket_manager import cli, data_manager
from supermarket_manager.constants import Category
from supermarket_manager.core_logic import SaleOutcome
from supermarket_manager.data_manager import Product


@pytest.fixture
def settings(tmp_path: Path) -> data_manager.ConfigSettings:
    parser = configparser.ConfigParser()
    parser.read_string("[Storage]\nDataDirectory = store\n[Reports]\nLowStockThreshold = 5\n")
    return data_manager.parse_settings(parser, base_path=tmp_path)


def _scripted(answers: Iterable[str]):
    pending = iter(answers)
    output: List[str] = []

    def reader(prompt: str) -> str:
        try:
            return next(pending)
        except StopIteration:
            raise EOFError from None

    return reader, output


def test_state_survives_restart(settings):
    """Everything committed in one session is visible to the next."""

    first = cli.build_application(settings)
    assert first.inventory_service.add_product(Product("P1", "Milk", Category.DAIRY, Decimal("2.50"), 20))
    assert first.inventory_service.add_product(Product("P2", "Bread", Category.BAKERY, Decimal("1.20"), 3))
    sale = first.sale_service.record_sale("P1", 5).sale
    assert first.inventory_service.restock_product("P2", 10)
    assert first.inventory_service.delete_product("P2")

    second = cli.build_application(settings)

    assert [p.product_id for p in second.inventory_service.get_all_products()] == ["P1"]
    assert second.inventory_service.get_product_by_id("P1").quantity_in_stock == 15
    assert second.sale_service.get_all_sales() == [sale]
    assert second.sale_service.get_total_revenue() == Decimal("12.50")


def test_files_use_line_format(settings):
    app = cli.build_application(settings)
    app.inventory_service.add_product(Product("P1", "Milk", Category.DAIRY, Decimal("2.50"), 20))
    sale = app.sale_service.record_sale("P1", 2).sale

    products_text = (settings.data_directory / "products.txt").read_text(encoding="utf-8")
    sales_text = (settings.data_directory / "sales.txt").read_text(encoding="utf-8")

    assert products_text == "P1,Milk,DAIRY,2.50,18\n"
    assert sales_text == f"{sale.sale_id},P1,Milk,2,2.50,{sale.timestamp}\n"


def test_hand_edited_files_are_tolerated(settings):
    """Malformed rows are skipped; valid rows around them still load."""

    settings.data_directory.mkdir(parents=True)
    (settings.data_directory / "products.txt").write_text(
        "P1,Milk,DAIRY,2.50,20\n\nP2,Widget,GADGETS,1.00,1\nP3,Bread,bakery,1.20,2\n",
        encoding="utf-8",
    )
    (settings.data_directory / "sales.txt").write_text(
        "S1,P1,Milk,1,2.50,1000\nS2,P1,Milk,1\nS3,P1,Milk,2,2.50,3000\n",
        encoding="utf-8",
    )

    app = cli.build_application(settings)

    assert [p.product_id for p in app.products.get_all()] == ["P1", "P3"]
    assert [s.sale_id for s in app.sales.get_all()] == ["S3", "S1"]


def test_sale_outcomes_leave_files_consistent(settings):
    app = cli.build_application(settings)
    app.inventory_service.add_product(Product("P1", "Milk", Category.DAIRY, Decimal("2.50"), 20))

    assert app.sale_service.record_sale("P1", 100).outcome is SaleOutcome.INSUFFICIENT_STOCK
    assert app.sale_service.record_sale("P404", 1).outcome is SaleOutcome.PRODUCT_NOT_FOUND
    assert (settings.data_directory / "sales.txt").read_text(encoding="utf-8") == ""

    assert app.sale_service.record_sale("P1", 20)
    report = app.inventory_service.generate_inventory_report()
    assert [p.product_id for p in report.out_of_stock_products] == ["P1"]
    assert [p.product_id for p in report.low_stock_products] == ["P1"]


def test_console_session_against_files(settings):
    """A full scripted session: add, sell, report, export, exit, reload."""

    reader, output = _scripted([
        "1", "2", "P1", "Milk", "2", "2.50", "20", "8",
        "2", "1", "P1", "17", "4",
        "3", "3", "4", "5",
        "4",
    ])
    app = cli.build_application(settings, reader=reader, writer=output.append)

    app.ui.start()

    text = "\n".join(output)
    assert "Product added successfully!" in text
    assert "  Remaining stock: 3" in output
    assert "LOW STOCK (at or below 5 units):" in text
    assert "Milk (P1) - 3 units" in text
    assert settings.export_path.exists()
    assert output[-1] == "\n✓ Thank you for using Supermarket Management System!"

    reloaded = cli.build_application(settings)
    assert reloaded.inventory_service.get_product_by_id("P1").quantity_in_stock == 3
    assert len(reloaded.sale_service.get_all_sales()) == 1
