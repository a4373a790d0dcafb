"""In-memory ledgers mirrored to line files.

Each ledger loads its file once on construction and from then on treats its
in-memory list as the source of truth. Every mutation is write-through: the
list changes first, then the whole file is rewritten from it, so a restart
never needs to replay anything. If the backing refuses the rewrite by raising
:class:`~supermarket_manager.storage.StorageError`, the in-memory change is
undone and the mutation reports failure.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, Generic, List, Optional, TypeVar

from . import log
from .constants import LOW_STOCK_THRESHOLD, PRODUCTS_FILE, SALES_FILE, Category
from .data_manager import (
    Product,
    Sale,
    deserialize_product,
    deserialize_sale,
    serialize_product,
    serialize_sale,
    to_epoch_millis,
)
from .storage import LineStore, StorageError


RecordT = TypeVar("RecordT", Product, Sale)


class _FileLedger(Generic[RecordT]):
    """Shared load/save/lookup machinery for the concrete ledgers."""

    label = "record"

    def __init__(
        self,
        storage: LineStore,
        file_name: str,
        *,
        decode: Callable[[str], Optional[RecordT]],
        encode: Callable[[RecordT], str],
        key: Callable[[RecordT], str],
    ) -> None:
        self._storage = storage
        self.file_name = file_name
        self._decode = decode
        self._encode = encode
        self._key = key
        self._records: List[RecordT] = []
        self._storage.initialize(file_name)
        self.reload()
        log.info("Loaded %d %ss from %s", len(self._records), self.label, file_name)

    def reload(self) -> None:
        """Discard the cache and rebuild it from the backing file."""

        self._records.clear()
        skipped = 0
        for line in self._storage.read_lines(self.file_name):
            record = self._decode(line)
            if record is None:
                skipped += 1
                continue
            self._records.append(record)
        if skipped:
            log.debug("Skipped %d malformed lines in %s", skipped, self.file_name)

    def _save(self) -> bool:
        try:
            self._storage.write_lines(self.file_name, [self._encode(record) for record in self._records])
        except StorageError as exc:
            log.error("Unable to persist %s: %s", self.file_name, exc)
            return False
        return True

    def get_all(self) -> List[RecordT]:
        return list(self._records)

    def get_by_id(self, record_id: str) -> Optional[RecordT]:
        return next((record for record in self._records if self._key(record) == record_id), None)

    def count(self) -> int:
        return len(self._records)

    def delete(self, record_id: str) -> bool:
        """Remove every entry with ``record_id``; rewrite only if one matched."""

        snapshot = list(self._records)
        self._records[:] = [record for record in snapshot if self._key(record) != record_id]
        if len(self._records) == len(snapshot):
            log.info("%s not found: %s", self.label.capitalize(), record_id)
            return False
        if not self._save():
            self._records[:] = snapshot
            return False
        log.info("Deleted %s: %s", self.label, record_id)
        return True


class ProductLedger(_FileLedger[Product]):
    """Authoritative product catalog, in file order."""

    label = "product"

    def __init__(self, storage: LineStore, file_name: str = PRODUCTS_FILE) -> None:
        super().__init__(
            storage,
            file_name,
            decode=deserialize_product,
            encode=serialize_product,
            key=lambda product: product.product_id,
        )

    def add(self, product: Product) -> bool:
        """Append ``product`` unless its id is taken or it is invalid."""

        if self.get_by_id(product.product_id) is not None:
            log.warning("Product with ID %s already exists", product.product_id)
            return False
        if not product.is_valid():
            log.warning("Invalid product data: %s", product)
            return False

        self._records.append(product)
        if not self._save():
            self._records.pop()
            return False
        log.info("Added product: %s", product.name)
        return True

    def update(self, product: Product) -> bool:
        """Replace the entry sharing ``product``'s id, keeping its position."""

        index = next(
            (idx for idx, existing in enumerate(self._records) if existing.product_id == product.product_id),
            None,
        )
        if index is None:
            log.warning("Product not found: %s", product.product_id)
            return False
        if not product.is_valid():
            log.warning("Invalid product data: %s", product)
            return False

        previous = self._records[index]
        self._records[index] = product
        if not self._save():
            self._records[index] = previous
            return False
        log.info("Updated product: %s", product.name)
        return True

    def search_by_name(self, query: str) -> List[Product]:
        needle = query.casefold()
        return [product for product in self._records if needle in product.name.casefold()]

    def get_by_category(self, category: Category) -> List[Product]:
        return [product for product in self._records if product.category is category]

    def get_low_stock_products(self, threshold: int = LOW_STOCK_THRESHOLD) -> List[Product]:
        return [product for product in self._records if product.quantity_in_stock <= threshold]

    def get_out_of_stock_products(self) -> List[Product]:
        return [product for product in self._records if product.quantity_in_stock == 0]

    def update_quantity(self, product_id: str, new_quantity: int) -> bool:
        product = self.get_by_id(product_id)
        if product is None:
            log.warning("Cannot update quantity of unknown product: %s", product_id)
            return False
        return self.update(product.with_quantity(new_quantity))


class SaleLedger(_FileLedger[Sale]):
    """Sales history, most recent first.

    Sales are immutable: :meth:`update` always refuses, and :meth:`delete`
    exists only to correct mistakes or compensate a failed transaction.
    """

    label = "sale"

    def __init__(self, storage: LineStore, file_name: str = SALES_FILE) -> None:
        super().__init__(
            storage,
            file_name,
            decode=deserialize_sale,
            encode=serialize_sale,
            key=lambda sale: sale.sale_id,
        )

    def reload(self) -> None:
        super().reload()
        self._records.sort(key=lambda sale: sale.timestamp, reverse=True)

    def add(self, sale: Sale) -> bool:
        self._records.insert(0, sale)
        if not self._save():
            self._records.pop(0)
            return False
        log.info("Added sale: %s", sale.sale_id)
        return True

    def update(self, sale: Sale) -> bool:
        log.warning("Sales are immutable; refusing to update %s", sale.sale_id)
        return False

    def get_sales_by_product(self, product_id: str) -> List[Sale]:
        return [sale for sale in self._records if sale.product_id == product_id]

    def get_sales_in_range(self, start: int, end: int) -> List[Sale]:
        """Return sales whose timestamp lies in ``[start, end]`` (milliseconds)."""

        return [sale for sale in self._records if start <= sale.timestamp <= end]

    def get_total_revenue(self) -> Decimal:
        return sum((sale.total_amount for sale in self._records), Decimal("0"))

    def get_today_sales(self, now: Optional[datetime] = None) -> List[Sale]:
        """Return sales made since local midnight of ``now``.

        Args:
            now (datetime | None): Reference moment; naive values are taken as
                local time. Defaults to the current local time.
        """

        current = (now or datetime.now()).astimezone()
        start_of_day = to_epoch_millis(current.replace(hour=0, minute=0, second=0, microsecond=0))
        return [sale for sale in self._records if sale.timestamp >= start_of_day]


__all__ = ["ProductLedger", "SaleLedger"]
