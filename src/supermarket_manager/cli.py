"""Command-line entry point and composition root.

This module only parses arguments, resolves settings and wires
storage → ledgers → services → console. Keeping it thin lets tests build the
same object graph with scripted input or an in-memory store.
"""

from __future__ import annotations

import argparse
import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from . import data_manager, log
from .console import ConsoleUI, Reader, Writer
from .core_logic import InventoryService, SaleService
from .repositories import ProductLedger, SaleLedger
from .storage import LineStore, TextFileStorage


EXIT_OK = 0
EXIT_CONFIG_ERROR = 2


@dataclass(frozen=True)
class Application:
    """Fully wired object graph for one session."""

    settings: data_manager.ConfigSettings
    products: ProductLedger
    sales: SaleLedger
    inventory_service: InventoryService
    sale_service: SaleService
    ui: ConsoleUI


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="supermarket",
        description="Interactive supermarket management console.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding products.txt and sales.txt (defaults to ./data).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Optional path to {data_manager.CONFIG_FILE_NAME} (searched upwards from the working directory).",
    )
    return parser


def load_settings(args: argparse.Namespace) -> data_manager.ConfigSettings:
    """Resolve the effective settings for the parsed arguments."""
    return data_manager.load_settings(
        getattr(args, "config", None),
        data_directory=getattr(args, "data_dir", None),
    )


def build_application(
    settings: data_manager.ConfigSettings,
    *,
    storage: Optional[LineStore] = None,
    reader: Reader = input,
    writer: Writer = print,
) -> Application:
    """Wire storage, ledgers, services and console for ``settings``."""
    store = storage if storage is not None else TextFileStorage(settings.data_directory)
    products = ProductLedger(store, settings.products_file)
    sales = SaleLedger(store, settings.sales_file)
    inventory_service = InventoryService(products, low_stock_threshold=settings.low_stock_threshold)
    sale_service = SaleService(sales, products)
    ui = ConsoleUI(
        inventory_service,
        sale_service,
        reader=reader,
        writer=writer,
        export_path=settings.export_path,
    )
    return Application(
        settings=settings,
        products=products,
        sales=sales,
        inventory_service=inventory_service,
        sale_service=sale_service,
        ui=ui,
    )


def handle_cli_error(error: Exception, *, session_started: bool) -> int:
    """Log an exception that reached the entry point and pick an exit code.

    Failures before the menu starts (unreadable or malformed configuration)
    return ``EXIT_CONFIG_ERROR``. Anything raised from inside a running session
    is logged with its traceback and the process still exits normally.
    """
    if not session_started:
        log.error("Configuration error: %s", error)
        return EXIT_CONFIG_ERROR
    log.error("Application error: %s", error, exc_info=error)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point: resolve settings, wire the application, run the menu."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(args)
    except (OSError, configparser.Error, ValueError) as error:
        return handle_cli_error(error, session_started=False)

    log.info("Starting supermarket console with data in '%s'", settings.data_directory)
    try:
        application = build_application(settings)
        application.ui.start()
    except KeyboardInterrupt:
        log.info("Interrupted by user")
    except Exception as error:  # last-resort guard for the interactive session
        return handle_cli_error(error, session_started=True)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
