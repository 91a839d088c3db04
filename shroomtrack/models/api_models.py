# api_models.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Entities handed out by the data service
class InventoryItem(BaseModel):
    id: str
    name: str
    type: str = "PACKAGING"  # PACKAGING, LABEL
    subtype: Optional[str] = None  # POUCH, TIN, STICKER
    quantity: float = 0
    threshold: float = 0
    unit: str = "units"
    unit_cost: float = 0.0
    supplier: Optional[str] = None
    pack_size: int = 1


class PurchaseOrder(BaseModel):
    id: str
    item_id: str
    item_name: str
    supplier: str
    quantity: int  # packs
    total_units: int
    total_cost: float
    status: str = "ORDERED"  # ORDERED, RECEIVED, COMPLAINT, RESOLVED
    date_ordered: int
    date_received: Optional[int] = None
    complaint_reason: Optional[str] = None
    resolution: Optional[str] = None


class Supplier(BaseModel):
    id: str
    name: str
    address: str = ""
    contact: str = ""


class Customer(BaseModel):
    id: str
    name: str
    email: str = ""
    contact: str = ""
    address: str = ""


class FinishedGood(BaseModel):
    id: str
    batch_id: Optional[str] = None
    recipe_name: str
    packaging_type: str
    quantity: int
    selling_price: Optional[float] = None


class SaleItem(BaseModel):
    finished_good_id: str
    recipe_name: str
    packaging_type: str
    quantity: int
    unit_price: float


class SalesRecord(BaseModel):
    id: str
    invoice_id: str
    customer_id: str
    customer_name: str
    customer_email: str = ""
    customer_phone: str = ""
    items: List[SaleItem]
    total_amount: float
    payment_method: str  # CASH, COD, CREDIT_CARD
    status: str = "INVOICED"  # INVOICED, DELIVERED
    date_created: int


class DailyCostMetrics(BaseModel):
    id: str
    date: str  # YYYY-MM-DD
    reference_id: str = ""
    weight_processed: float = 0.0
    processing_hours: float = 0.0
    raw_material_cost: float = 0.0
    packaging_cost: float = 0.0
    labor_cost: float = 0.0
    wastage_cost: float = 0.0
    total_cost: float = 0.0


class ProcessConfig(BaseModel):
    start_time: int  # epoch seconds
    wash_duration_seconds: int
    drain_duration_seconds: int
    cook_duration_seconds: int
    total_duration_seconds: int


class MushroomBatch(BaseModel):
    id: str
    source_farm: str
    net_weight_kg: float
    remaining_weight_kg: Optional[float] = None
    status: str = "RECEIVED"  # RECEIVED, PROCESSING, DRYING_COMPLETE, PACKAGED
    date_received: int = 0
    process_config: Optional[ProcessConfig] = None
    selected_recipe_name: Optional[str] = None
    recipe_type: Optional[str] = None
    quality_check_passed: Optional[bool] = None
    processing_wastage_kg: Optional[float] = None
    wastage_reason: Optional[str] = None

    @property
    def input_weight_kg(self) -> float:
        return self.remaining_weight_kg or self.net_weight_kg


class Recipe(BaseModel):
    id: str
    name: str
    type: str = "CHIPS"  # CHIPS, DEHYDRATED
    base_weight_kg: float = 0.5
    cook_time_minutes: float = 10
    temperature: float = 160
    notes: str = ""
    image_url: str = ""


class ServiceResult(BaseModel):
    """Envelope returned by every data service call."""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None


# Request payloads
class PurchaseOrderRequest(BaseModel):
    item_id: str
    packages: int = Field(1, gt=0)
    supplier: Optional[str] = None


class QCRequest(BaseModel):
    passed: bool
    complaint_reason: Optional[str] = None


class ResolveComplaintRequest(BaseModel):
    resolution: str


class SupplierRequest(BaseModel):
    name: str
    address: str = ""
    contact: str = ""
    item_name: str
    item_type: str = "PACKAGING"
    item_subtype: str = "POUCH"
    pack_size: int = Field(100, gt=0)
    unit_cost: float = Field(45.0, ge=0)


class CustomerRequest(BaseModel):
    name: str
    email: str = ""
    contact: str = ""
    address: str = ""


class SaleRequest(BaseModel):
    customer_id: Optional[str] = None
    product_key: Optional[str] = None  # recipe_name|packaging_type
    quantity: int = Field(1, gt=0)
    unit_price: Optional[float] = None
    payment_method: str = "CASH"


class RateRequest(BaseModel):
    rate: float = Field(..., ge=0)


class DailyCostUpdate(BaseModel):
    raw_material_cost: float = 0.0
    packaging_cost: float = 0.0
    labor_cost: float = 0.0
    wastage_cost: float = 0.0


class RecipeRequest(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    base_weight_kg: Optional[float] = None
    cook_time_minutes: Optional[float] = None
    temperature: Optional[float] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None


class StartBatchRequest(BaseModel):
    recipe_id: str


class CompleteBatchRequest(BaseModel):
    good_weight_kg: Optional[float] = None
    wastage_weight_kg: float = 0.0
    wastage_reason: Optional[str] = None
    custom_reason: Optional[str] = None


class ReceiveBatchRequest(BaseModel):
    source_farm: str
    net_weight_kg: float = Field(..., gt=0)


class FinishedGoodRequest(BaseModel):
    batch_id: Optional[str] = None
    recipe_name: str
    packaging_type: str
    quantity: int = Field(..., gt=0)
    selling_price: Optional[float] = None


# View models returned by the facades
class BatchCard(BaseModel):
    batch: MushroomBatch
    stage: Optional[str] = None  # WASH, DRAIN, COOK, COMPLETE
    time_left_seconds: int = 0
    time_left_display: str = "0:00"
    progress: float = 0.0
    label: str = ""
    warning: str = ""
    recipe_name: Optional[str] = None


class FloorView(BaseModel):
    batches: List[BatchCard]
    recipes: List[Recipe]


class PieSlice(BaseModel):
    label: str
    color: str
    cost: float
    pct: float
    path_data: str
    index: int


class RevenuePoint(BaseModel):
    date: str
    amount: float
    height_pct: float = 0.0


class AvailableGood(BaseModel):
    key: str
    id: str
    label: str
    total_qty: int
    price: float


class FinancialSummary(BaseModel):
    packaging_procurement: float
    raw_material_cost: float
    labor_cost: float
    wastage_cost: float
    cash_flow_expenses: float
    sales_revenue: float
    net_profit: float
    total_units_produced: int
    avg_cost_per_unit: float


class FinanceDashboard(BaseModel):
    summary: FinancialSummary
    cost_breakdown: List[PieSlice]
    revenue_trend: List[RevenuePoint]
    low_stock: List[InventoryItem]
    available_goods: List[AvailableGood]
    inventory: List[InventoryItem]
    open_orders: List[PurchaseOrder]
    complaints: List[PurchaseOrder]
    suppliers: List[Supplier]
    customers: List[Customer]
    sales: List[SalesRecord]
    daily_costs: List[DailyCostMetrics]
    labor_rate: float
    raw_material_rate: float


class InvoiceLine(BaseModel):
    recipe_name: str
    packaging_type: str
    quantity: int
    unit_price: float
    line_total: float


class Invoice(BaseModel):
    invoice_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    date_created: int
    payment_method: str
    status: str
    lines: List[InvoiceLine]
    total_amount: float


class DeduplicateResponse(BaseModel):
    removed: int
    message: str
    recipes: List[Recipe]
