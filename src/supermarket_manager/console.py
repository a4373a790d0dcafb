"""Interactive text menu over the inventory and sale services.

The console only collects input, calls a service, and prints the outcome. It
never touches a ledger directly. ``reader`` and ``writer`` default to
:func:`input` and :func:`print` and can be swapped for scripted callables.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Optional

from . import log, reports
from .constants import DEFAULT_EXPORT_FILE, Category
from .core_logic import InventoryService, SaleService
from .data_manager import Product


RULE_WIDTH = 100
SALES_PAGE_SIZE = 20

Reader = Callable[[str], str]
Writer = Callable[[str], None]


class ConsoleUI:
    """Menu-driven front-end; :meth:`start` runs until Exit or end of input."""

    def __init__(
        self,
        inventory_service: InventoryService,
        sale_service: SaleService,
        *,
        reader: Reader = input,
        writer: Writer = print,
        export_path: Optional[Path] = None,
    ) -> None:
        self.inventory = inventory_service
        self.sales = sale_service
        self._reader = reader
        self._writer = writer
        self.export_path = export_path or Path(DEFAULT_EXPORT_FILE)

    # ------------------------------------------------------------------
    # Input/output helpers
    # ------------------------------------------------------------------

    def display_message(self, message: str) -> None:
        self._writer(f"\n✓ {message}")

    def display_error(self, message: str) -> None:
        self._writer(f"\n✗ ERROR: {message}")

    def read_string(self, prompt: str) -> str:
        return self._reader(prompt).strip()

    def read_choice(self) -> int:
        try:
            return int(self.read_string("\nEnter your choice: "))
        except ValueError:
            return -1

    def read_int(self, prompt: str) -> Optional[int]:
        try:
            return int(self.read_string(prompt))
        except ValueError:
            self.display_error("Invalid number format")
            return None

    def read_decimal(self, prompt: str) -> Optional[Decimal]:
        try:
            value = Decimal(self.read_string(prompt))
        except InvalidOperation:
            self.display_error("Invalid number format")
            return None
        if not value.is_finite():
            self.display_error("Invalid number format")
            return None
        return value

    def read_category(self, prompt: str) -> Optional[Category]:
        categories = list(Category)
        self._writer("\nAvailable Categories:")
        for index, category in enumerate(categories, start=1):
            self._writer(f"{index}. {category.value}")
        index = self.read_int(prompt)
        if index is None or not 1 <= index <= len(categories):
            self.display_error("Invalid category selection")
            return None
        return categories[index - 1]

    def _run_menu(self, title: str, entries: list[tuple[str, Optional[Callable[[], None]]]]) -> None:
        while True:
            self._writer(f"\n--- {title} ---")
            for number, (label, _) in enumerate(entries, start=1):
                self._writer(f"{number}. {label}")
            choice = self.read_choice()
            if not 1 <= choice <= len(entries):
                self.display_error("Invalid choice")
                continue
            action = entries[choice - 1][1]
            if action is None:
                return
            action()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._writer("\n" + "=" * 60)
        self._writer("     SUPERMARKET MANAGEMENT SYSTEM")
        self._writer("=" * 60)
        try:
            while True:
                self._writer("\n--- MAIN MENU ---")
                self._writer("1. Product Management")
                self._writer("2. Sales Management")
                self._writer("3. Reports")
                self._writer("4. Exit")
                choice = self.read_choice()
                if choice == 1:
                    self.product_menu()
                elif choice == 2:
                    self.sales_menu()
                elif choice == 3:
                    self.reports_menu()
                elif choice == 4:
                    break
                else:
                    self.display_error("Invalid choice. Please try again.")
        except EOFError:
            log.info("Input closed; leaving the main menu")
        self.display_message("Thank you for using Supermarket Management System!")

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def product_menu(self) -> None:
        self._run_menu(
            "PRODUCT MANAGEMENT",
            [
                ("View All Products", self.view_all_products),
                ("Add New Product", self.add_new_product),
                ("Update Product", self.update_product),
                ("Delete Product", self.delete_product),
                ("Search Products", self.search_products),
                ("View by Category", self.view_by_category),
                ("Restock Product", self.restock_product),
                ("Back to Main Menu", None),
            ],
        )

    def _product_line(self, product: Product) -> str:
        return (
            f"- {product.product_id}: {product.name} "
            f"({reports.format_money(product.price)}) - {product.quantity_in_stock} in stock"
        )

    def view_all_products(self) -> None:
        products = self.inventory.get_all_products()
        if not products:
            self.display_message("No products found.")
            return
        self._writer("\n" + "-" * RULE_WIDTH)
        self._writer(f"{'ID':<10} {'Name':<25} {'Category':<15} {'Price':<10} {'Stock':<10}")
        self._writer("-" * RULE_WIDTH)
        for product in products:
            self._writer(
                f"{product.product_id:<10} {product.name[:25]:<25} "
                f"{product.category.value[:15]:<15} "
                f"{reports.format_money(product.price):<10} {product.quantity_in_stock:<10}"
            )
        self._writer("-" * RULE_WIDTH)
        self._writer(f"Total Products: {len(products)}")

    def add_new_product(self) -> None:
        self._writer("\n--- ADD NEW PRODUCT ---")
        product_id = self.read_string("Product ID: ")
        if not product_id:
            self.display_error("Product ID cannot be empty")
            return
        name = self.read_string("Product Name: ")
        if not name:
            self.display_error("Product name cannot be empty")
            return
        category = self.read_category(f"Select Category (1-{len(Category)}): ")
        if category is None:
            return
        price = self.read_decimal("Price: ")
        if price is None or price <= 0:
            self.display_error("Price must be positive")
            return
        quantity = self.read_int("Initial Quantity: ")
        if quantity is None or quantity < 0:
            self.display_error("Quantity cannot be negative")
            return

        product = Product(product_id, name, category, price, quantity)
        if self.inventory.add_product(product):
            self.display_message("Product added successfully!")
        elif self.inventory.get_product_by_id(product_id) is not None:
            self.display_error(f"A product with ID {product_id} already exists")
        else:
            self.display_error("Failed to add product")

    def update_product(self) -> None:
        self._writer("\n--- UPDATE PRODUCT ---")
        product_id = self.read_string("Enter Product ID to update: ")
        existing = self.inventory.get_product_by_id(product_id)
        if existing is None:
            self.display_error("Product not found")
            return
        self._writer(
            f"Current Product: {existing.name} - {reports.format_money(existing.price)} "
            f"- {existing.quantity_in_stock} units"
        )

        name = self.read_string("New Name (press Enter to keep current): ") or existing.name
        price = existing.price
        price_raw = self.read_string("New Price (press Enter to keep current): ")
        if price_raw:
            try:
                candidate = Decimal(price_raw)
            except InvalidOperation:
                candidate = None
            if candidate is not None and candidate.is_finite():
                price = candidate
            else:
                self.display_error("Invalid price; keeping current value")
        quantity = existing.quantity_in_stock
        quantity_raw = self.read_string("New Quantity (press Enter to keep current): ")
        if quantity_raw:
            try:
                quantity = int(quantity_raw)
            except ValueError:
                self.display_error("Invalid quantity; keeping current value")

        updated = Product(existing.product_id, name, existing.category, price, quantity)
        if self.inventory.update_product(updated):
            self.display_message("Product updated successfully!")
        else:
            self.display_error("Failed to update product (name must be non-empty, price positive, quantity not negative)")

    def delete_product(self) -> None:
        self._writer("\n--- DELETE PRODUCT ---")
        product_id = self.read_string("Enter Product ID to delete: ")
        product = self.inventory.get_product_by_id(product_id)
        if product is None:
            self.display_error("Product not found")
            return
        self._writer(f"Product: {product.name}")
        if self.read_string("Are you sure you want to delete? (yes/no): ").lower() != "yes":
            self.display_message("Deletion cancelled")
            return
        if self.inventory.delete_product(product_id):
            self.display_message("Product deleted successfully!")
        else:
            self.display_error("Failed to delete product")

    def search_products(self) -> None:
        self._writer("\n--- SEARCH PRODUCTS ---")
        query = self.read_string("Enter search query: ")
        results = self.inventory.search_products(query)
        if not results:
            self.display_message(f"No products found matching '{query}'")
            return
        self._writer(f"\nSearch Results ({len(results)} found):")
        for product in results:
            self._writer(self._product_line(product))

    def view_by_category(self) -> None:
        self._writer("\n--- VIEW BY CATEGORY ---")
        category = self.read_category("Select Category: ")
        if category is None:
            return
        products = self.inventory.get_products_by_category(category)
        if not products:
            self.display_message(f"No products in {category.value}")
            return
        self._writer(f"\n{category.value} ({len(products)} products):")
        for product in products:
            self._writer(self._product_line(product))

    def restock_product(self) -> None:
        self._writer("\n--- RESTOCK PRODUCT ---")
        product_id = self.read_string("Enter Product ID: ")
        product = self.inventory.get_product_by_id(product_id)
        if product is None:
            self.display_error("Product not found")
            return
        self._writer(f"Current Stock: {product.quantity_in_stock} units")
        additional = self.read_int("Enter quantity to add: ")
        if additional is None or additional <= 0:
            self.display_error("Quantity must be positive")
            return
        if self.inventory.restock_product(product_id, additional):
            self.display_message(
                f"Product restocked successfully! New stock: {product.quantity_in_stock + additional}"
            )
        else:
            self.display_error("Failed to restock product")

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def sales_menu(self) -> None:
        self._run_menu(
            "SALES MANAGEMENT",
            [
                ("Record New Sale", self.record_new_sale),
                ("View All Sales", self.view_all_sales),
                ("View Today's Sales", self.view_todays_sales),
                ("Back to Main Menu", None),
            ],
        )

    def record_new_sale(self) -> None:
        self._writer("\n--- RECORD NEW SALE ---")
        product_id = self.read_string("Enter Product ID: ")
        product = self.inventory.get_product_by_id(product_id)
        if product is None:
            self.display_error("Product not found")
            return
        self._writer(f"Product: {product.name}")
        self._writer(f"Price: {reports.format_money(product.price)}")
        self._writer(f"Available Stock: {product.quantity_in_stock}")
        quantity = self.read_int("Enter quantity to sell: ")
        if quantity is None or quantity <= 0:
            self.display_error("Quantity must be positive")
            return

        result = self.sales.record_sale(product_id, quantity)
        if result:
            self._writer(f"  Total: {reports.format_money(result.sale.total_amount)}")
            self._writer(f"  Remaining stock: {result.remaining_stock}")
            self.display_message("Sale recorded successfully!")
        else:
            self.display_error(f"Failed to record sale: {result.message}")

    def view_all_sales(self) -> None:
        sales = self.sales.get_all_sales()
        if not sales:
            self.display_message("No sales recorded yet.")
            return
        width = RULE_WIDTH + 10
        self._writer("\n" + "-" * width)
        self._writer(f"{'Sale ID':<26} {'Date/Time':<20} {'Product':<25} {'Qty':<8} {'Price':<10} {'Total':<10}")
        self._writer("-" * width)
        for sale in sales[:SALES_PAGE_SIZE]:
            self._writer(
                f"{sale.sale_id[:26]:<26} {sale.formatted_date():<20} {sale.product_name[:25]:<25} "
                f"{sale.quantity:<8} {reports.format_money(sale.price_per_unit):<10} "
                f"{reports.format_money(sale.total_amount):<10}"
            )
        self._writer("-" * width)
        self._writer(f"Showing {min(SALES_PAGE_SIZE, len(sales))} of {len(sales)} total sales")

    def view_todays_sales(self) -> None:
        sales = self.sales.get_todays_sales()
        if not sales:
            self.display_message("No sales today.")
            return
        self._writer("\n--- TODAY'S SALES ---")
        for sale in sales:
            self._writer(
                f"{sale.formatted_date()} | {sale.product_name} x{sale.quantity} = "
                f"{reports.format_money(sale.total_amount)}"
            )
        self._writer(f"\nToday's Total Revenue: {reports.format_money(self.sales.get_todays_revenue())}")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def reports_menu(self) -> None:
        self._run_menu(
            "REPORTS",
            [
                ("Inventory Report", self.show_inventory_report),
                ("Sales Report", self.show_sales_report),
                ("Low Stock Alert", self.show_low_stock_alert),
                ("Export Reports to Excel", self.export_reports),
                ("Back to Main Menu", None),
            ],
        )

    def show_inventory_report(self) -> None:
        self._writer("\n" + reports.render_inventory_report(self.inventory.generate_inventory_report()))

    def show_sales_report(self) -> None:
        self._writer("\n" + self.sales.generate_sales_report())

    def show_low_stock_alert(self) -> None:
        self._writer("\n--- LOW STOCK ALERT ---")
        alert = reports.render_low_stock_alert(self.inventory.generate_inventory_report())
        if alert:
            self._writer(alert)
        else:
            self.display_message("All products are adequately stocked!")

    def export_reports(self) -> None:
        try:
            destination = reports.export_workbook(
                self.export_path,
                self.inventory.generate_inventory_report(),
                self.inventory.get_all_products(),
                self.sales.get_all_sales(),
                self.sales.summarize_sales(),
            )
        except OSError as exc:
            log.error("Workbook export to %s failed: %s", self.export_path, exc)
            self.display_error(f"Could not write workbook: {exc}")
            return
        self.display_message(f"Reports exported to {destination}")
