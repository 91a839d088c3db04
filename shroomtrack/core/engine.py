# engine.py
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
from fastapi import HTTPException
from ..models.api_models import (
    BatchCard,
    CompleteBatchRequest,
    Customer,
    CustomerRequest,
    DailyCostUpdate,
    DeduplicateResponse,
    FinanceDashboard,
    FloorView,
    InventoryItem,
    Invoice,
    InvoiceLine,
    MushroomBatch,
    PurchaseOrder,
    PurchaseOrderRequest,
    QCRequest,
    Recipe,
    RecipeRequest,
    SaleRequest,
    SalesRecord,
    ServiceResult,
    Supplier,
    SupplierRequest,
)
from .batch_stage import (
    QCValidationError,
    check_qc,
    derive_stage,
    fast_forward,
    format_time,
    plan_process,
    stage_display,
    switch_recipe,
)
from . import finance
from .services import CostLedgerService, ProcurementService, ProductionService, SalesService
from ..utils.constants import (
    ACTIVE_BATCH_STATUSES,
    DEFAULT_BASE_WEIGHT_KG,
    DEFAULT_COOK_TIME_MINUTES,
    DEFAULT_ITEM_THRESHOLD,
    DEFAULT_ITEM_UNIT,
    DEFAULT_RECIPE_TYPE,
    DEFAULT_TEMPERATURE,
    STAGE_COMPLETE,
)

logger = logging.getLogger(__name__)


def unwrap(result: ServiceResult, status_code: int = 400):
    if not result.success:
        raise HTTPException(status_code=status_code, detail=result.message or "Request failed")
    return result.data


class FinanceFacade:
    """Finance page: procurement, sales and the financial overview."""

    def __init__(
        self,
        procurement: ProcurementService,
        sales: SalesService,
        ledger: CostLedgerService,
        clock,
    ):
        self._procurement = procurement
        self._sales = sales
        self._ledger = ledger
        self._clock = clock
        # last successfully fetched copy of each dataset
        self._state: Dict[str, list] = {
            "inventory": [],
            "purchase_orders": [],
            "suppliers": [],
            "customers": [],
            "finished_goods": [],
            "sales": [],
            "daily_costs": [],
            "weekly_revenue": [],
        }

    def _fetch_all(self) -> None:
        fetchers = {
            "inventory": self._procurement.get_inventory,
            "purchase_orders": self._procurement.get_purchase_orders,
            "suppliers": self._procurement.get_suppliers,
            "customers": self._sales.get_customers,
            "finished_goods": self._sales.get_finished_goods,
            "sales": self._sales.get_sales,
            "daily_costs": self._ledger.get_daily_costs,
            "weekly_revenue": self._sales.get_weekly_revenue,
        }
        with ThreadPoolExecutor(max_workers=len(fetchers)) as pool:
            futures = {name: pool.submit(fetch) for name, fetch in fetchers.items()}
            results = {name: future.result() for name, future in futures.items()}

        for name, result in results.items():
            if isinstance(result, ServiceResult):
                if not result.success:
                    logger.warning("Keeping previous %s: %s", name, result.message)
                    continue
                self._state[name] = result.data or []
            else:
                self._state[name] = result

    def dashboard(self) -> FinanceDashboard:
        self._fetch_all()
        s = self._state
        summary = finance.summarize(s["purchase_orders"], s["daily_costs"], s["sales"], s["finished_goods"])
        return FinanceDashboard(
            summary=summary,
            cost_breakdown=finance.cost_breakdown(summary),
            revenue_trend=finance.revenue_trend(s["weekly_revenue"]),
            low_stock=finance.low_stock(s["inventory"]),
            available_goods=list(finance.available_goods(s["finished_goods"]).values()),
            inventory=s["inventory"],
            open_orders=[p for p in s["purchase_orders"] if p.status == "ORDERED"],
            complaints=[p for p in s["purchase_orders"] if p.status == "COMPLAINT"],
            suppliers=s["suppliers"],
            customers=s["customers"],
            sales=s["sales"],
            daily_costs=s["daily_costs"],
            labor_rate=self._ledger.get_labor_rate(),
            raw_material_rate=self._ledger.get_raw_material_rate(),
        )

    # rates and daily costs
    def set_labor_rate(self, rate: float) -> float:
        return unwrap(self._ledger.set_labor_rate(rate))

    def set_raw_material_rate(self, rate: float) -> float:
        return unwrap(self._ledger.set_raw_material_rate(rate))

    def update_daily_cost(self, cost_id: str, update: DailyCostUpdate):
        return unwrap(self._ledger.update_daily_cost(cost_id, update.model_dump()), status_code=404)

    # procurement
    def create_purchase_order(self, req: PurchaseOrderRequest) -> PurchaseOrder:
        return unwrap(self._procurement.create_purchase_order(req.item_id, req.packages, req.supplier))

    def record_qc(self, order_id: str, req: QCRequest) -> PurchaseOrder:
        if req.passed:
            return unwrap(self._procurement.receive_purchase_order(order_id))
        if not req.complaint_reason or not req.complaint_reason.strip():
            raise HTTPException(status_code=400, detail="A complaint reason is required when QC fails")
        return unwrap(self._procurement.complaint_purchase_order(order_id, req.complaint_reason.strip()))

    def resolve_complaint(self, order_id: str, resolution: str) -> PurchaseOrder:
        return unwrap(self._procurement.resolve_complaint(order_id, resolution))

    def add_supplier(self, req: SupplierRequest) -> Supplier:
        supplier = unwrap(self._procurement.add_supplier(Supplier(
            id=f"sup-{uuid.uuid4().hex[:12]}",
            name=req.name,
            address=req.address,
            contact=req.contact,
        )))
        unwrap(self._procurement.add_inventory_item(InventoryItem(
            id=f"inv-{uuid.uuid4().hex[:12]}",
            name=req.item_name,
            type=req.item_type,
            subtype=req.item_subtype,
            quantity=0,
            threshold=DEFAULT_ITEM_THRESHOLD,
            unit=DEFAULT_ITEM_UNIT,
            unit_cost=req.unit_cost,
            supplier=req.name,
            pack_size=req.pack_size,
        )))
        return supplier

    def delete_supplier(self, supplier_id: str) -> None:
        unwrap(self._procurement.delete_supplier(supplier_id), status_code=404)

    # sales
    def add_customer(self, req: CustomerRequest) -> Customer:
        return unwrap(self._sales.add_customer(Customer(
            id=f"cust-{uuid.uuid4().hex[:12]}", **req.model_dump()
        )))

    def create_sale(self, req: SaleRequest) -> SalesRecord:
        if not req.customer_id or not req.product_key:
            raise HTTPException(status_code=400, detail="Please select customer and product.")

        goods = unwrap(self._sales.get_finished_goods())
        product = finance.available_goods(goods).get(req.product_key)
        if product is None:
            raise HTTPException(status_code=400, detail="Invalid product selection.")

        unit_price = product.price if req.unit_price is None else req.unit_price
        return unwrap(self._sales.create_sale(
            req.customer_id, product.id, req.quantity, unit_price, req.payment_method
        ))

    def mark_delivered(self, sale_id: str) -> SalesRecord:
        return unwrap(self._sales.update_sale_status(sale_id, "DELIVERED"), status_code=404)

    def invoice(self, sale_id: str) -> Invoice:
        sales: List[SalesRecord] = unwrap(self._sales.get_sales())
        sale = next((s for s in sales if s.id == sale_id), None)
        if sale is None:
            raise HTTPException(status_code=404, detail="Sale not found")
        return Invoice(
            invoice_id=sale.invoice_id,
            customer_name=sale.customer_name,
            customer_email=sale.customer_email,
            customer_phone=sale.customer_phone,
            date_created=sale.date_created,
            payment_method=sale.payment_method,
            status=sale.status,
            lines=[
                InvoiceLine(
                    recipe_name=item.recipe_name,
                    packaging_type=item.packaging_type,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=round(item.quantity * item.unit_price, 2),
                )
                for item in sale.items
            ],
            total_amount=sale.total_amount,
        )


class ProcessingFacade:
    """Processing floor: batch cards, the batch timer actions and recipe management."""

    def __init__(self, production: ProductionService, clock):
        self._production = production
        self._clock = clock

    # floor
    def floor(self) -> FloorView:
        batches = self.active_batches()
        recipes = self.list_recipes()
        now = self._clock.now()
        return FloorView(
            batches=[self.card(batch, recipes, now) for batch in batches],
            recipes=recipes,
        )

    def active_batches(self) -> List[MushroomBatch]:
        batches = unwrap(self._production.fetch_batches())
        return [b for b in batches if b.status in ACTIVE_BATCH_STATUSES]

    @staticmethod
    def card(batch: MushroomBatch, recipes: List[Recipe], now: int) -> BatchCard:
        if batch.status != "PROCESSING" or batch.process_config is None:
            return BatchCard(batch=batch)

        recipe = next((r for r in recipes if r.name == batch.selected_recipe_name), None)
        if recipe is None and recipes:
            recipe = recipes[0]
        recipe_type = recipe.type if recipe else DEFAULT_RECIPE_TYPE

        state = derive_stage(batch.process_config, now)
        display = stage_display(state.stage, recipe_type)
        return BatchCard(
            batch=batch,
            stage=state.stage,
            time_left_seconds=state.time_left,
            time_left_display=format_time(state.time_left),
            progress=state.progress,
            label=display["label"],
            warning=display["warning"],
            recipe_name=recipe.name if recipe else "Unknown",
        )

    def _batch(self, batch_id: str) -> MushroomBatch:
        batch = next((b for b in self.active_batches() if b.id == batch_id), None)
        if batch is None:
            raise HTTPException(status_code=404, detail="Batch not found on the processing floor")
        return batch

    def _recipe(self, recipe_id: str) -> Recipe:
        recipes = self.list_recipes()
        if not recipes:
            raise HTTPException(status_code=400, detail="Please create a recipe first!")
        recipe = next((r for r in recipes if r.id == recipe_id), None)
        if recipe is None:
            raise HTTPException(status_code=404, detail="Recipe not found")
        return recipe

    def _processing_batch(self, batch_id: str) -> MushroomBatch:
        batch = self._batch(batch_id)
        if batch.status != "PROCESSING" or batch.process_config is None:
            raise HTTPException(status_code=400, detail="Batch is not being processed")
        return batch

    # batch actions
    def start_batch(self, batch_id: str, recipe_id: str) -> MushroomBatch:
        recipe = self._recipe(recipe_id)
        batch = self._batch(batch_id)
        if batch.status == "PROCESSING":
            raise HTTPException(status_code=400, detail="Batch is already being processed")
        config = plan_process(batch.net_weight_kg, recipe, self._clock.now())
        return unwrap(self._production.update_batch_status(batch_id, "PROCESSING", {
            "process_config": config,
            "selected_recipe_name": recipe.name,
            "recipe_type": recipe.name,
        }))

    def switch_recipe(self, batch_id: str, recipe_id: str) -> MushroomBatch:
        recipe = self._recipe(recipe_id)
        batch = self._processing_batch(batch_id)
        config = switch_recipe(batch.process_config, batch.net_weight_kg, recipe)
        return unwrap(self._production.update_batch_status(batch_id, "PROCESSING", {
            "process_config": config,
            "selected_recipe_name": recipe.name,
            "recipe_type": recipe.name,
        }))

    def speed_up(self, batch_id: str) -> MushroomBatch:
        batch = self._processing_batch(batch_id)
        config = fast_forward(batch.process_config, self._clock.now())
        return unwrap(self._production.update_batch_status(batch_id, "PROCESSING", {
            "process_config": config,
        }))

    def complete_batch(self, batch_id: str, req: CompleteBatchRequest) -> MushroomBatch:
        batch = self._processing_batch(batch_id)
        if derive_stage(batch.process_config, self._clock.now()).stage != STAGE_COMPLETE:
            raise HTTPException(status_code=400, detail="Batch cycle has not finished yet")
        try:
            reason = check_qc(
                batch.input_weight_kg,
                req.good_weight_kg,
                req.wastage_weight_kg,
                req.wastage_reason,
                req.custom_reason,
            )
        except QCValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return unwrap(self._production.update_batch_status(batch_id, "DRYING_COMPLETE", {
            "quality_check_passed": True,
            "processing_wastage_kg": req.wastage_weight_kg or 0.0,
            "wastage_reason": reason,
        }))

    # recipes
    def list_recipes(self) -> List[Recipe]:
        return unwrap(self._production.get_recipes())

    def save_recipe(self, req: RecipeRequest, recipe_id: Optional[str] = None) -> Recipe:
        recipes = self.list_recipes()
        existing = None
        if recipe_id is not None:
            existing = next((r for r in recipes if r.id == recipe_id), None)
            if existing is None:
                raise HTTPException(status_code=404, detail="Recipe not found")

        name = req.name if req.name is not None else (existing.name if existing else None)
        if not name or not name.strip():
            raise HTTPException(status_code=400, detail="Recipe name is required")
        if any(r.name.lower() == name.lower() and r.id != recipe_id for r in recipes):
            raise HTTPException(status_code=400, detail="A recipe with this name already exists!")

        base = existing.model_dump() if existing else {}
        fields = {k: v for k, v in req.model_dump().items() if v is not None}
        merged = {**base, **fields}
        recipe = Recipe(
            id=recipe_id or f"r-{uuid.uuid4().hex[:12]}",
            name=name,
            type=merged.get("type") or DEFAULT_RECIPE_TYPE,
            base_weight_kg=merged.get("base_weight_kg") or DEFAULT_BASE_WEIGHT_KG,
            cook_time_minutes=merged.get("cook_time_minutes") or DEFAULT_COOK_TIME_MINUTES,
            temperature=merged.get("temperature") or DEFAULT_TEMPERATURE,
            notes=merged.get("notes") or "",
            image_url=merged.get("image_url") or "",
        )
        return unwrap(self._production.save_recipe(recipe))

    def delete_recipe(self, recipe_id: str) -> None:
        unwrap(self._production.delete_recipe(recipe_id), status_code=404)

    def delete_all_recipes(self) -> int:
        recipes = self.list_recipes()
        for recipe in recipes:
            unwrap(self._production.delete_recipe(recipe.id))
        return len(recipes)

    def remove_duplicates(self) -> DeduplicateResponse:
        """Keep the first recipe of each name (trimmed, case-insensitive) and delete the rest."""
        seen = set()
        duplicates = []
        for recipe in self.list_recipes():
            key = recipe.name.strip().lower()
            if key in seen:
                duplicates.append(recipe.id)
            else:
                seen.add(key)

        if not duplicates:
            return DeduplicateResponse(removed=0, message="No duplicates found.", recipes=self.list_recipes())

        removed = 0
        for recipe_id in duplicates:
            result = self._production.delete_recipe(recipe_id)
            if result.success:
                removed += 1
            else:
                logger.error("Failed to delete %s: %s", recipe_id, result.message)
        return DeduplicateResponse(
            removed=removed,
            message=f"Cleanup complete. Removed {removed} duplicate recipes.",
            recipes=self.list_recipes(),
        )
