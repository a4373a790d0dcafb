"""Business logic layer for the supermarket ledgers.

The services here sit between the console surface and the ledgers. Expected
failures (bad input, unknown ids, insufficient stock) never escape as
exceptions: every operation logs what went wrong and hands back a plain
success signal that the caller must check.

:meth:`SaleService.record_sale` is the only operation that has to move two
independently persisted collections together. It runs as a small saga: the
sale is written first, the stock decrement second, and a failed decrement is
compensated by deleting the sale again.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional

from . import log, reports
from .constants import LOW_STOCK_THRESHOLD, Category
from .data_manager import Inventory, Product, Sale, SalesSummary, to_epoch_millis
from .repositories import ProductLedger, SaleLedger


RECENT_SALES_LIMIT = 10
TOP_PRODUCTS_LIMIT = 5


class SaleOutcome(str, Enum):
    """Every way :meth:`SaleService.record_sale` can finish."""

    RECORDED = "RECORDED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    SALE_NOT_RECORDED = "SALE_NOT_RECORDED"
    ROLLED_BACK = "ROLLED_BACK"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"


@dataclass(frozen=True)
class SaleResult:
    """Result of a sale attempt; truthy only when the sale was recorded."""

    outcome: SaleOutcome
    message: str
    sale: Optional[Sale] = None
    remaining_stock: Optional[int] = None

    def __bool__(self) -> bool:
        return self.outcome is SaleOutcome.RECORDED


def generate_sale_id(*, prefix: str = "SALE", when: Optional[datetime] = None) -> str:
    """Generate a sortable, time-based sale identifier.

    Args:
        prefix (str): Designator prepended to the identifier.
        when (datetime | None): Moment encoded in the identifier. Defaults to
            the current UTC time.

    Returns:
        str: Identifier formed as ``{prefix}{YYYYMMDDHHMMSSffffff}``.

    Microsecond resolution makes collisions unlikely but not impossible;
    :class:`SaleService` adds a numeric suffix when a candidate is taken.
    """

    when = when or datetime.now(UTC)
    return f"{prefix}{when.strftime('%Y%m%d%H%M%S%f')}"


def total_stock_value(products: Iterable[Product]) -> Decimal:
    return sum((product.stock_value for product in products), Decimal("0"))


def total_revenue(sales: Iterable[Sale]) -> Decimal:
    return sum((sale.total_amount for sale in sales), Decimal("0"))


def top_selling_products(sales: Iterable[Sale], limit: int = TOP_PRODUCTS_LIMIT) -> List[tuple[str, int]]:
    """Rank products by units sold.

    Sales are grouped by product id; each group is labelled with the product
    name snapshot of its first sale in ``sales`` order.

    Args:
        sales (Iterable[Sale]): Sales to aggregate, most recent first.
        limit (int): Maximum number of entries returned.

    Returns:
        list[tuple[str, int]]: ``(product name, units sold)`` pairs, best
            sellers first.
    """

    units: Dict[str, int] = defaultdict(int)
    names: Dict[str, str] = {}
    for sale in sales:
        units[sale.product_id] += sale.quantity
        names.setdefault(sale.product_id, sale.product_name)
    ranked = sorted(units.items(), key=lambda item: item[1], reverse=True)
    return [(names[product_id], quantity) for product_id, quantity in ranked[:limit]]


def summarize_sales(all_sales: Iterable[Sale], todays_sales: Iterable[Sale]) -> SalesSummary:
    """Build the sales aggregate from two ledger snapshots."""

    all_sales = list(all_sales)
    todays_sales = list(todays_sales)
    return SalesSummary(
        total_sales=len(all_sales),
        total_revenue=total_revenue(all_sales),
        today_sales=len(todays_sales),
        today_revenue=total_revenue(todays_sales),
        recent_today=tuple(todays_sales[:RECENT_SALES_LIMIT]),
        top_products=tuple(top_selling_products(all_sales)),
    )


class InventoryService:
    """Catalog rules layered over a :class:`ProductLedger`."""

    def __init__(self, products: ProductLedger, *, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> None:
        self._products = products
        self.low_stock_threshold = low_stock_threshold

    def get_all_products(self) -> List[Product]:
        return self._products.get_all()

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        return self._products.get_by_id(product_id)

    def add_product(self, product: Product) -> bool:
        """Add ``product``, warning (without refusing) on a duplicate name."""

        name = product.name.casefold()
        if any(existing.name.casefold() == name for existing in self._products.search_by_name(product.name)):
            log.warning("Product with similar name exists: %s", product.name)
        return self._products.add(product)

    def update_product(self, product: Product) -> bool:
        if self._products.get_by_id(product.product_id) is None:
            log.warning("Cannot update non-existent product: %s", product.product_id)
            return False
        return self._products.update(product)

    def delete_product(self, product_id: str) -> bool:
        return self._products.delete(product_id)

    def search_products(self, query: str) -> List[Product]:
        if not query.strip():
            return []
        return self._products.search_by_name(query)

    def get_products_by_category(self, category: Category) -> List[Product]:
        return self._products.get_by_category(category)

    def generate_inventory_report(self) -> Inventory:
        all_products = self._products.get_all()
        return Inventory(
            total_products=len(all_products),
            total_value=total_stock_value(all_products),
            low_stock_products=tuple(self._products.get_low_stock_products(self.low_stock_threshold)),
            out_of_stock_products=tuple(self._products.get_out_of_stock_products()),
            low_stock_threshold=self.low_stock_threshold,
        )

    def restock_product(self, product_id: str, additional_quantity: int) -> bool:
        if additional_quantity <= 0:
            log.warning("Restock quantity must be positive: %s", additional_quantity)
            return False
        product = self._products.get_by_id(product_id)
        if product is None:
            log.warning("Cannot restock unknown product: %s", product_id)
            return False
        new_quantity = product.quantity_in_stock + additional_quantity
        if not self._products.update_quantity(product_id, new_quantity):
            return False
        log.info("Restocked %s to %d units", product_id, new_quantity)
        return True


class SaleService:
    """Sale recording and sales reporting across both ledgers."""

    def __init__(self, sales: SaleLedger, products: ProductLedger) -> None:
        self._sales = sales
        self._products = products

    def get_all_sales(self) -> List[Sale]:
        return self._sales.get_all()

    def get_sale_by_id(self, sale_id: str) -> Optional[Sale]:
        return self._sales.get_by_id(sale_id)

    def _next_sale_id(self, when: datetime) -> str:
        base = generate_sale_id(when=when)
        candidate = base
        suffix = 1
        while self._sales.get_by_id(candidate) is not None:
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def _fail(self, outcome: SaleOutcome, message: str, *args: object) -> SaleResult:
        log.warning(message, *args)
        return SaleResult(outcome=outcome, message=message % args if args else message)

    def record_sale(self, product_id: str, quantity: int) -> SaleResult:
        """Sell ``quantity`` units of ``product_id``.

        Forward steps are "append the sale" then "decrement the stock". When
        the decrement fails the appended sale is deleted again. Should that
        compensating delete fail as well, the sale stays recorded with the
        stock unchanged; the result then carries ``ROLLBACK_FAILED`` and the
        inconsistency is logged at ERROR, without any retry.

        The stock check and the decrement are not atomic. That holds only
        because one session is the sole writer of both ledgers.

        Args:
            product_id (str): Product being sold.
            quantity (int): Units sold; must be positive.

        Returns:
            SaleResult: Truthy only when both ledgers were updated.
        """

        if quantity <= 0:
            return self._fail(SaleOutcome.INVALID_QUANTITY, "Sale quantity must be positive")

        product = self._products.get_by_id(product_id)
        if product is None:
            return self._fail(SaleOutcome.PRODUCT_NOT_FOUND, "Product not found: %s", product_id)

        if product.quantity_in_stock < quantity:
            return self._fail(
                SaleOutcome.INSUFFICIENT_STOCK,
                "Insufficient stock. Available: %s, Requested: %s",
                product.quantity_in_stock,
                quantity,
            )

        moment = datetime.now(UTC)
        sale = Sale(
            sale_id=self._next_sale_id(moment),
            product_id=product.product_id,
            product_name=product.name,
            quantity=quantity,
            price_per_unit=product.price,
            timestamp=to_epoch_millis(moment),
        )

        if not self._sales.add(sale):
            return self._fail(SaleOutcome.SALE_NOT_RECORDED, "Failed to record sale for %s", product_id)

        new_quantity = product.quantity_in_stock - quantity
        if not self._products.update_quantity(product_id, new_quantity):
            if self._sales.delete(sale.sale_id):
                return self._fail(
                    SaleOutcome.ROLLED_BACK,
                    "Failed to update inventory, sale %s rolled back",
                    sale.sale_id,
                )
            log.error(
                "Rollback failed: sale %s is recorded but stock of %s was not decremented",
                sale.sale_id,
                product_id,
            )
            return SaleResult(
                outcome=SaleOutcome.ROLLBACK_FAILED,
                message=f"Sale {sale.sale_id} could not be rolled back after a failed stock update",
                sale=sale,
            )

        log.info(
            "Recorded sale '%s' for product '%s' (quantity=%s, total=%s, remaining=%s)",
            sale.sale_id,
            product_id,
            quantity,
            sale.total_amount,
            new_quantity,
        )
        return SaleResult(
            outcome=SaleOutcome.RECORDED,
            message=f"Sale recorded: {sale.sale_id}",
            sale=sale,
            remaining_stock=new_quantity,
        )

    def get_todays_sales(self, now: Optional[datetime] = None) -> List[Sale]:
        return self._sales.get_today_sales(now)

    def get_total_revenue(self) -> Decimal:
        return self._sales.get_total_revenue()

    def get_todays_revenue(self, now: Optional[datetime] = None) -> Decimal:
        return total_revenue(self.get_todays_sales(now))

    def summarize_sales(self, now: Optional[datetime] = None) -> SalesSummary:
        return summarize_sales(self._sales.get_all(), self.get_todays_sales(now))

    def generate_sales_report(self, now: Optional[datetime] = None) -> str:
        return reports.render_sales_report(self.summarize_sales(now))
