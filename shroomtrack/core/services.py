# services.py
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from ..models.api_models import (
    Customer,
    DailyCostMetrics,
    FinishedGood,
    InventoryItem,
    MushroomBatch,
    PurchaseOrder,
    Recipe,
    SaleItem,
    SalesRecord,
    ServiceResult,
    Supplier,
)
from ..storage.storage import AbstractStorage
from ..utils.constants import (
    COMPLAINT_RESOLUTIONS,
    DEFAULT_LABOR_RATE,
    DEFAULT_RAW_MATERIAL_RATE,
    DEFAULT_SUPPLIER,
    LABOR_RATE_KEY,
    ONE_HOUR,
    PAYMENT_METHODS,
    RAW_MATERIAL_RATE_KEY,
    REPLACEMENT_RESOLUTION,
    REVENUE_TREND_DAYS,
)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _day(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def _ok(data=None, message: Optional[str] = None) -> ServiceResult:
    return ServiceResult(success=True, data=data, message=message)


def _fail(message: str) -> ServiceResult:
    return ServiceResult(success=False, message=message)


# CostLedgerService
class CostLedgerService:
    """Daily cost log plus the labor and raw material rates used to fill it."""

    def __init__(self, clock, storage: AbstractStorage):
        self._clock = clock
        self._storage = storage
        self._lock = threading.Lock()

    def get_labor_rate(self) -> float:
        rate = self._storage.get_setting(LABOR_RATE_KEY)
        return DEFAULT_LABOR_RATE if rate is None else rate

    def set_labor_rate(self, rate: float) -> ServiceResult:
        if rate < 0:
            return _fail("Rate cannot be negative")
        self._storage.set_setting(LABOR_RATE_KEY, rate)
        return _ok(rate)

    def get_raw_material_rate(self) -> float:
        rate = self._storage.get_setting(RAW_MATERIAL_RATE_KEY)
        return DEFAULT_RAW_MATERIAL_RATE if rate is None else rate

    def set_raw_material_rate(self, rate: float) -> ServiceResult:
        if rate < 0:
            return _fail("Rate cannot be negative")
        self._storage.set_setting(RAW_MATERIAL_RATE_KEY, rate)
        return _ok(rate)

    def get_daily_costs(self) -> ServiceResult:
        costs = self._storage.list("daily_costs")
        return _ok(sorted(costs, key=lambda c: c.date, reverse=True))

    def update_daily_cost(self, cost_id: str, fields: Dict[str, float]) -> ServiceResult:
        with self._lock:
            cost: Optional[DailyCostMetrics] = self._storage.get("daily_costs", cost_id)
            if cost is None:
                return _fail(f"Cost record {cost_id} not found")
            updated = cost.model_copy(update=fields)
            updated.total_cost = self._total(updated)
            self._storage.save("daily_costs", updated)
        return _ok(updated)

    def log(
        self,
        reference_id: str,
        raw_material_cost: float = 0.0,
        labor_cost: float = 0.0,
        wastage_cost: float = 0.0,
        packaging_cost: float = 0.0,
        weight_processed: float = 0.0,
        processing_hours: float = 0.0,
    ) -> DailyCostMetrics:
        """Accumulate costs into today's record, creating it on first use."""
        date = _day(self._clock.now())
        cost_id = f"cost-{date}"
        with self._lock:
            cost = self._storage.get("daily_costs", cost_id) or DailyCostMetrics(id=cost_id, date=date)
            cost.reference_id = reference_id
            cost.raw_material_cost += raw_material_cost
            cost.labor_cost += labor_cost
            cost.wastage_cost += wastage_cost
            cost.packaging_cost += packaging_cost
            cost.weight_processed += weight_processed
            cost.processing_hours += processing_hours
            cost.total_cost = self._total(cost)
            self._storage.save("daily_costs", cost)
        return cost

    @staticmethod
    def _total(cost: DailyCostMetrics) -> float:
        return round(
            cost.raw_material_cost + cost.packaging_cost + cost.labor_cost + cost.wastage_cost, 2
        )


# ProcurementService
class ProcurementService:
    def __init__(self, clock, storage: AbstractStorage):
        self._clock = clock
        self._storage = storage

    def get_inventory(self) -> ServiceResult:
        return _ok(self._storage.list("inventory"))

    def add_inventory_item(self, item: InventoryItem) -> ServiceResult:
        self._storage.save("inventory", item)
        return _ok(item)

    def get_suppliers(self) -> ServiceResult:
        return _ok(self._storage.list("suppliers"))

    def add_supplier(self, supplier: Supplier) -> ServiceResult:
        if not supplier.name.strip():
            return _fail("Supplier name is required")
        self._storage.save("suppliers", supplier)
        return _ok(supplier)

    def delete_supplier(self, supplier_id: str) -> ServiceResult:
        if not self._storage.delete("suppliers", supplier_id):
            return _fail(f"Supplier {supplier_id} not found")
        return _ok()

    def get_purchase_orders(self) -> ServiceResult:
        orders = self._storage.list("purchase_orders")
        return _ok(sorted(orders, key=lambda p: p.date_ordered, reverse=True))

    def create_purchase_order(self, item_id: str, packages: int, supplier: Optional[str] = None) -> ServiceResult:
        item: Optional[InventoryItem] = self._storage.get("inventory", item_id)
        if item is None:
            return _fail(f"Inventory item {item_id} not found")
        if packages <= 0:
            return _fail("Quantity must be at least one package")
        order = PurchaseOrder(
            id=_new_id("po"),
            item_id=item.id,
            item_name=item.name,
            supplier=supplier or item.supplier or DEFAULT_SUPPLIER,
            quantity=packages,
            total_units=packages * item.pack_size,
            total_cost=round(packages * item.unit_cost, 2),
            status="ORDERED",
            date_ordered=self._clock.now(),
        )
        self._storage.save("purchase_orders", order)
        return _ok(order)

    def receive_purchase_order(self, order_id: str) -> ServiceResult:
        order: Optional[PurchaseOrder] = self._storage.get("purchase_orders", order_id)
        if order is None:
            return _fail(f"Purchase order {order_id} not found")
        if order.status != "ORDERED":
            return _fail(f"Purchase order is {order.status}, not ORDERED")
        self._restock(order)
        order.status = "RECEIVED"
        order.date_received = self._clock.now()
        self._storage.save("purchase_orders", order)
        return _ok(order)

    def complaint_purchase_order(self, order_id: str, reason: str) -> ServiceResult:
        order: Optional[PurchaseOrder] = self._storage.get("purchase_orders", order_id)
        if order is None:
            return _fail(f"Purchase order {order_id} not found")
        if order.status != "ORDERED":
            return _fail(f"Purchase order is {order.status}, not ORDERED")
        order.status = "COMPLAINT"
        order.complaint_reason = reason
        self._storage.save("purchase_orders", order)
        return _ok(order)

    def resolve_complaint(self, order_id: str, resolution: str) -> ServiceResult:
        order: Optional[PurchaseOrder] = self._storage.get("purchase_orders", order_id)
        if order is None:
            return _fail(f"Purchase order {order_id} not found")
        if order.status != "COMPLAINT":
            return _fail("Purchase order has no open complaint")
        if resolution not in COMPLAINT_RESOLUTIONS:
            return _fail(f"Unknown resolution: {resolution}")
        if resolution == REPLACEMENT_RESOLUTION:
            self._restock(order)
            order.date_received = self._clock.now()
        order.status = "RESOLVED"
        order.resolution = resolution
        self._storage.save("purchase_orders", order)
        return _ok(order)

    def _restock(self, order: PurchaseOrder) -> None:
        item: Optional[InventoryItem] = self._storage.get("inventory", order.item_id)
        if item is not None:
            item.quantity += order.total_units
            self._storage.save("inventory", item)


# SalesService
class SalesService:
    def __init__(self, clock, storage: AbstractStorage):
        self._clock = clock
        self._storage = storage

    def get_customers(self) -> ServiceResult:
        return _ok(self._storage.list("customers"))

    def add_customer(self, customer: Customer) -> ServiceResult:
        if not customer.name.strip():
            return _fail("Customer name is required")
        self._storage.save("customers", customer)
        return _ok(customer)

    def get_finished_goods(self) -> ServiceResult:
        return _ok(self._storage.list("finished_goods"))

    def add_finished_good(self, good: FinishedGood) -> ServiceResult:
        self._storage.save("finished_goods", good)
        return _ok(good)

    def get_sales(self) -> ServiceResult:
        sales = self._storage.list("sales")
        return _ok(sorted(sales, key=lambda s: s.date_created, reverse=True))

    def create_sale(
        self,
        customer_id: str,
        finished_good_id: str,
        quantity: int,
        unit_price: float,
        payment_method: str,
    ) -> ServiceResult:
        customer: Optional[Customer] = self._storage.get("customers", customer_id)
        if customer is None:
            return _fail("Customer not found.")
        good: Optional[FinishedGood] = self._storage.get("finished_goods", finished_good_id)
        if good is None:
            return _fail("Product not found.")
        if quantity <= 0:
            return _fail("Quantity must be positive.")
        if payment_method not in PAYMENT_METHODS:
            return _fail(f"Unsupported payment method: {payment_method}")

        # draw from every lot of the same recipe and packaging, listed lot first
        lots = [good] + [
            g for g in self._storage.list("finished_goods")
            if g.id != good.id
            and g.recipe_name == good.recipe_name
            and g.packaging_type == good.packaging_type
            and g.quantity > 0
        ]
        available = sum(max(lot.quantity, 0) for lot in lots)
        if available < quantity:
            return _fail(f"Insufficient stock. Available: {available}")

        remaining = quantity
        for lot in lots:
            if remaining == 0:
                break
            taken = min(lot.quantity, remaining)
            if taken <= 0:
                continue
            lot.quantity -= taken
            remaining -= taken
            self._storage.save("finished_goods", lot)

        now = self._clock.now()
        sale = SalesRecord(
            id=_new_id("sale"),
            invoice_id=f"INV-{_day(now).replace('-', '')}-{uuid.uuid4().hex[:4].upper()}",
            customer_id=customer.id,
            customer_name=customer.name,
            customer_email=customer.email,
            customer_phone=customer.contact,
            items=[SaleItem(
                finished_good_id=good.id,
                recipe_name=good.recipe_name,
                packaging_type=good.packaging_type,
                quantity=quantity,
                unit_price=unit_price,
            )],
            total_amount=round(quantity * unit_price, 2),
            payment_method=payment_method,
            status="INVOICED",
            date_created=now,
        )
        self._storage.save("sales", sale)
        return _ok(sale)

    def update_sale_status(self, sale_id: str, status: str) -> ServiceResult:
        sale: Optional[SalesRecord] = self._storage.get("sales", sale_id)
        if sale is None:
            return _fail(f"Sale {sale_id} not found")
        sale.status = status
        self._storage.save("sales", sale)
        return _ok(sale)

    def get_weekly_revenue(self) -> List[Dict]:
        """Delivered revenue per day for the last REVENUE_TREND_DAYS days, oldest first."""
        today = datetime.fromtimestamp(self._clock.now(), tz=timezone.utc).date()
        days = [(today - timedelta(days=offset)).isoformat() for offset in range(REVENUE_TREND_DAYS - 1, -1, -1)]
        totals = {day: 0.0 for day in days}
        for sale in self._storage.list("sales"):
            if sale.status != "DELIVERED":
                continue
            day = _day(sale.date_created)
            if day in totals:
                totals[day] = round(totals[day] + sale.total_amount, 2)
        return [{"date": day, "amount": totals[day]} for day in days]


# ProductionService
class ProductionService:
    """Batches and recipes. Batch receipt and completion feed the cost ledger."""

    def __init__(self, clock, storage: AbstractStorage, ledger: CostLedgerService):
        self._clock = clock
        self._storage = storage
        self._ledger = ledger

    def fetch_batches(self) -> ServiceResult:
        return _ok(self._storage.list("batches"))

    def receive_batch(self, source_farm: str, net_weight_kg: float) -> ServiceResult:
        if net_weight_kg <= 0:
            return _fail("Net weight must be positive")
        batch = MushroomBatch(
            id=_new_id("batch"),
            source_farm=source_farm,
            net_weight_kg=net_weight_kg,
            status="RECEIVED",
            date_received=self._clock.now(),
        )
        self._storage.save("batches", batch)
        self._ledger.log(
            reference_id=batch.id,
            raw_material_cost=round(net_weight_kg * self._ledger.get_raw_material_rate(), 2),
        )
        return _ok(batch)

    def update_batch_status(self, batch_id: str, status: str, updates: Optional[Dict] = None) -> ServiceResult:
        batch: Optional[MushroomBatch] = self._storage.get("batches", batch_id)
        if batch is None:
            return _fail(f"Batch {batch_id} not found")
        fields = dict(updates or {})
        fields["status"] = status
        updated = MushroomBatch.model_validate({**batch.model_dump(), **fields})
        self._storage.save("batches", updated)

        if status == "DRYING_COMPLETE" and batch.status != "DRYING_COMPLETE":
            self._log_completion(updated)
        return _ok(updated)

    def _log_completion(self, batch: MushroomBatch) -> None:
        hours = 0.0
        if batch.process_config is not None:
            hours = round(batch.process_config.total_duration_seconds / ONE_HOUR, 2)
        wastage = batch.processing_wastage_kg or 0.0
        self._ledger.log(
            reference_id=batch.id,
            labor_cost=round(hours * self._ledger.get_labor_rate(), 2),
            wastage_cost=round(wastage * self._ledger.get_raw_material_rate(), 2),
            weight_processed=batch.input_weight_kg,
            processing_hours=hours,
        )

    def get_recipes(self) -> ServiceResult:
        return _ok(self._storage.list("recipes"))

    def save_recipe(self, recipe: Recipe) -> ServiceResult:
        self._storage.save("recipes", recipe)
        return _ok(recipe)

    def delete_recipe(self, recipe_id: str) -> ServiceResult:
        if not self._storage.delete("recipes", recipe_id):
            return _fail(f"Recipe {recipe_id} not found")
        return _ok()
