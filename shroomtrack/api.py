# api.py
import uvicorn
import os
import logging
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from .models.api_models import (
    CompleteBatchRequest,
    Customer,
    CustomerRequest,
    DailyCostMetrics,
    DailyCostUpdate,
    DeduplicateResponse,
    FinanceDashboard,
    FinishedGood,
    FinishedGoodRequest,
    FloorView,
    Invoice,
    MushroomBatch,
    PurchaseOrder,
    PurchaseOrderRequest,
    QCRequest,
    RateRequest,
    ReceiveBatchRequest,
    Recipe,
    RecipeRequest,
    ResolveComplaintRequest,
    SaleRequest,
    SalesRecord,
    StartBatchRequest,
    Supplier,
    SupplierRequest,
)
from .core.services import CostLedgerService, ProcurementService, ProductionService, SalesService
from .core.engine import FinanceFacade, ProcessingFacade, unwrap
from .core.ticker import FloorTicker
from .utils.clock_adapter import ClockAdapter, SystemClock
from .utils.constants import FLOOR_TICK_SECONDS
from .storage.storage import AbstractStorage, InMemoryStorage, SqlStorage
from .storage.database_service import DatabaseService

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_app(
    storage: AbstractStorage,
    clock,
    tick_seconds: float = FLOOR_TICK_SECONDS,
    db_service: Optional[DatabaseService] = None,
) -> FastAPI:
    ledger = CostLedgerService(clock, storage)
    procurement = ProcurementService(clock, storage)
    sales = SalesService(clock, storage)
    production = ProductionService(clock, storage, ledger)
    finance = FinanceFacade(procurement, sales, ledger, clock)
    processing = ProcessingFacade(production, clock)
    ticker = FloorTicker(processing, interval_seconds=tick_seconds) if tick_seconds > 0 else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ticker is not None:
            ticker.start()
            logger.info("Processing floor ticking every %ss", tick_seconds)
        yield
        if ticker is not None:
            ticker.stop()

    app = FastAPI(title="ShroomTrack", lifespan=lifespan)
    app.state.finance = finance
    app.state.processing = processing
    app.state.ticker = ticker

    # ---------------------------------------------------------------- finance
    @app.get("/finance/dashboard", response_model=FinanceDashboard)
    def finance_dashboard():
        return finance.dashboard()

    @app.put("/finance/rates/labor")
    def set_labor_rate(req: RateRequest):
        return {"labor_rate": finance.set_labor_rate(req.rate)}

    @app.put("/finance/rates/raw-material")
    def set_raw_material_rate(req: RateRequest):
        return {"raw_material_rate": finance.set_raw_material_rate(req.rate)}

    @app.put("/finance/daily-costs/{cost_id}", response_model=DailyCostMetrics)
    def update_daily_cost(cost_id: str, req: DailyCostUpdate):
        return finance.update_daily_cost(cost_id, req)

    @app.post("/finance/purchase-orders", response_model=PurchaseOrder)
    def create_purchase_order(req: PurchaseOrderRequest):
        return finance.create_purchase_order(req)

    @app.post("/finance/purchase-orders/{order_id}/qc", response_model=PurchaseOrder)
    def purchase_order_qc(order_id: str, req: QCRequest):
        return finance.record_qc(order_id, req)

    @app.post("/finance/purchase-orders/{order_id}/resolve", response_model=PurchaseOrder)
    def resolve_complaint(order_id: str, req: ResolveComplaintRequest):
        return finance.resolve_complaint(order_id, req.resolution)

    @app.post("/finance/suppliers", response_model=Supplier)
    def add_supplier(req: SupplierRequest):
        return finance.add_supplier(req)

    @app.delete("/finance/suppliers/{supplier_id}")
    def delete_supplier(supplier_id: str):
        finance.delete_supplier(supplier_id)
        return {"deleted": supplier_id}

    @app.post("/finance/customers", response_model=Customer)
    def add_customer(req: CustomerRequest):
        return finance.add_customer(req)

    @app.post("/finance/sales", response_model=SalesRecord)
    def create_sale(req: SaleRequest):
        return finance.create_sale(req)

    @app.post("/finance/sales/{sale_id}/deliver", response_model=SalesRecord)
    def mark_delivered(sale_id: str):
        return finance.mark_delivered(sale_id)

    @app.get("/finance/sales/{sale_id}/invoice", response_model=Invoice)
    def get_invoice(sale_id: str):
        return finance.invoice(sale_id)

    # ------------------------------------------------------------- processing
    @app.get("/processing/floor", response_model=FloorView)
    def processing_floor():
        return processing.floor()

    @app.post("/processing/batches/{batch_id}/start", response_model=MushroomBatch)
    def start_batch(batch_id: str, req: StartBatchRequest):
        return processing.start_batch(batch_id, req.recipe_id)

    @app.post("/processing/batches/{batch_id}/switch-recipe", response_model=MushroomBatch)
    def switch_batch_recipe(batch_id: str, req: StartBatchRequest):
        return processing.switch_recipe(batch_id, req.recipe_id)

    @app.post("/processing/batches/{batch_id}/speed-up", response_model=MushroomBatch)
    def speed_up_batch(batch_id: str):
        return processing.speed_up(batch_id)

    @app.post("/processing/batches/{batch_id}/complete", response_model=MushroomBatch)
    def complete_batch(batch_id: str, req: CompleteBatchRequest):
        return processing.complete_batch(batch_id, req)

    @app.get("/processing/recipes", response_model=List[Recipe])
    def list_recipes():
        return processing.list_recipes()

    @app.post("/processing/recipes", response_model=Recipe)
    def create_recipe(req: RecipeRequest):
        return processing.save_recipe(req)

    @app.put("/processing/recipes/{recipe_id}", response_model=Recipe)
    def update_recipe(recipe_id: str, req: RecipeRequest):
        return processing.save_recipe(req, recipe_id)

    @app.delete("/processing/recipes/{recipe_id}")
    def delete_recipe(recipe_id: str):
        processing.delete_recipe(recipe_id)
        return {"deleted": recipe_id}

    @app.delete("/processing/recipes")
    def delete_all_recipes():
        return {"deleted": processing.delete_all_recipes(), "message": "All recipes cleared."}

    @app.post("/processing/recipes/deduplicate", response_model=DeduplicateResponse)
    def deduplicate_recipes():
        return processing.remove_duplicates()

    # ------------------------------------------------------------ intake
    @app.post("/batches", response_model=MushroomBatch)
    def receive_batch(req: ReceiveBatchRequest):
        return unwrap(production.receive_batch(req.source_farm, req.net_weight_kg))

    @app.post("/finished-goods", response_model=FinishedGood)
    def add_finished_good(req: FinishedGoodRequest):
        return unwrap(sales.add_finished_good(FinishedGood(
            id=f"fg-{uuid.uuid4().hex[:12]}", **req.model_dump()
        )))

    @app.post("/reset-database")
    def reset_database():
        if db_service is None:
            raise HTTPException(status_code=400, detail="Database is not enabled")
        return db_service.reset_tables()

    return app


# Initialize the clock (wall clock unless a remote simulation clock is configured)
if os.environ.get("CLOCK") is not None and os.environ.get("CLOCK").lower() == "remote":
    CLOCK_URL = os.environ.get("CLOCK_URL") or "http://127.0.0.1:8000"
    clock = ClockAdapter(base_url=CLOCK_URL)
    logger.info("Using remote simulation clock at %s", CLOCK_URL)
else:
    clock = SystemClock()
    logger.info("Using the system clock")

# initialise state
USE_DATABASE: bool = os.getenv("USE_DATABASE", "false").lower() == "true"

if USE_DATABASE:
    logger.info("Using SQL database for all records")
    db_service = DatabaseService(os.getenv("POSTGRES_CONNECTION_URL"))
    db_service.create_tables()
    storage = SqlStorage(db_service)
else:
    logger.info("All data structures are in-memory")
    db_service = None
    storage = InMemoryStorage()

app = build_app(
    storage,
    clock,
    tick_seconds=float(os.getenv("FLOOR_TICK_SECONDS", FLOOR_TICK_SECONDS)),
    db_service=db_service,
)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8080)
