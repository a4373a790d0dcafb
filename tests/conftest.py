"""Shared pytest fixtures and utilities for the supermarket tests."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Sequence

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from supermarket_manager import core_logic  # noqa: E402
from supermarket_manager.console import ConsoleUI  # noqa: E402
from supermarket_manager.constants import Category  # noqa: E402
from supermarket_manager.data_manager import Product, Sale  # noqa: E402
from supermarket_manager.repositories import ProductLedger, SaleLedger  # noqa: E402
from supermarket_manager.storage import InMemoryStorage, StorageError, TextFileStorage  # noqa: E402


class FlakyStorage(InMemoryStorage):
    """In-memory store that can be told to refuse writes to given files."""

    def __init__(self, files=None) -> None:
        super().__init__(files)
        self.failing: set[str] = set()

    def write_lines(self, name: str, lines: Sequence[str]) -> None:
        if name in self.failing:
            raise StorageError(f"refusing to write {name}")
        super().write_lines(name, lines)


@dataclass
class ScriptedConsole:
    """Console wired to a fixed list of answers, capturing everything printed."""

    ui: ConsoleUI
    output: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.output)


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture
def product_factory() -> Callable[..., Product]:
    """Build valid products, overriding any field by keyword."""

    def _make(**overrides) -> Product:
        values = {
            "product_id": "P1",
            "name": "Milk",
            "category": Category.DAIRY,
            "price": Decimal("2.50"),
            "quantity_in_stock": 20,
        }
        values.update(overrides)
        return Product(**values)

    return _make


@pytest.fixture
def sale_factory() -> Callable[..., Sale]:
    """Build sales, overriding any field by keyword."""

    def _make(**overrides) -> Sale:
        values = {
            "sale_id": "SALE20251030120000000000",
            "product_id": "P1",
            "product_name": "Milk",
            "quantity": 2,
            "price_per_unit": Decimal("2.50"),
            "timestamp": 1_761_825_600_000,
        }
        values.update(overrides)
        return Sale(**values)

    return _make


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def flaky_storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def file_storage(data_dir: Path) -> TextFileStorage:
    return TextFileStorage(data_dir)


@pytest.fixture
def product_ledger(memory_storage: InMemoryStorage) -> ProductLedger:
    return ProductLedger(memory_storage)


@pytest.fixture
def sale_ledger(memory_storage: InMemoryStorage) -> SaleLedger:
    return SaleLedger(memory_storage)


@pytest.fixture
def inventory_service(product_ledger: ProductLedger) -> core_logic.InventoryService:
    return core_logic.InventoryService(product_ledger)


@pytest.fixture
def sale_service(sale_ledger: SaleLedger, product_ledger: ProductLedger) -> core_logic.SaleService:
    return core_logic.SaleService(sale_ledger, product_ledger)


@pytest.fixture
def stocked_ledger(product_ledger: ProductLedger, product_factory: Callable[..., Product]) -> ProductLedger:
    """Product ledger holding the single ``P1`` Milk product with 20 units."""

    assert product_ledger.add(product_factory())
    return product_ledger


@pytest.fixture
def set_fixed_datetime(monkeypatch: pytest.MonkeyPatch) -> Callable[[datetime], datetime]:
    """Patch ``core_logic.datetime`` to return a predetermined moment."""

    def _apply(moment: datetime) -> datetime:
        class _FixedDateTime:
            @staticmethod
            def now(tz=None):
                assert tz is UTC
                return moment

        monkeypatch.setattr(core_logic, "datetime", _FixedDateTime)
        return moment

    return _apply


@pytest.fixture
def console_factory(
    inventory_service: core_logic.InventoryService,
    sale_service: core_logic.SaleService,
    tmp_path: Path,
) -> Callable[[Iterable[str]], ScriptedConsole]:
    """Create a console that answers prompts from ``answers`` and then hits EOF."""

    def _create(answers: Iterable[str]) -> ScriptedConsole:
        pending = iter(answers)
        output: List[str] = []

        def reader(prompt: str) -> str:
            output.append(prompt)
            try:
                return next(pending)
            except StopIteration:
                raise EOFError from None

        ui = ConsoleUI(
            inventory_service,
            sale_service,
            reader=reader,
            writer=output.append,
            export_path=tmp_path / "exports" / "reports.xlsx",
        )
        return ScriptedConsole(ui=ui, output=output)

    return _create
