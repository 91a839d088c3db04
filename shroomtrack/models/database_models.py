from typing import Optional, Dict, List
from sqlmodel import SQLModel, Field, Column, JSON, Index


class Listed(SQLModel):
    """Insertion sequence, assigned on first save and kept across updates."""
    seq: int = Field(default=0, index=True)


class InventoryItem(Listed, table=True):
    __tablename__ = "inventory_items"

    id: str = Field(default=None, primary_key=True)
    name: str
    type: str
    subtype: Optional[str] = None
    quantity: float = 0
    threshold: float = 0
    unit: str = "units"
    unit_cost: float = 0.0
    supplier: Optional[str] = Field(default=None, index=True)
    pack_size: int = 1


class PurchaseOrder(Listed, table=True):
    """
    Purchase orders for packaging and labels. Time fields use integer timestamps.
    """
    __tablename__ = "purchase_orders"

    id: str = Field(default=None, primary_key=True)
    item_id: str = Field(index=True)
    item_name: str
    supplier: str
    quantity: int
    total_units: int
    total_cost: float
    status: str = Field(default="ORDERED", index=True)
    date_ordered: int = Field(default=0, nullable=False)
    date_received: Optional[int] = None
    complaint_reason: Optional[str] = None
    resolution: Optional[str] = None


class Supplier(Listed, table=True):
    __tablename__ = "suppliers"

    id: str = Field(default=None, primary_key=True)
    name: str
    address: str = ""
    contact: str = ""


class Customer(Listed, table=True):
    __tablename__ = "customers"

    id: str = Field(default=None, primary_key=True)
    name: str
    email: str = ""
    contact: str = ""
    address: str = ""


class FinishedGood(Listed, table=True):
    __tablename__ = "finished_goods"

    id: str = Field(default=None, primary_key=True)
    batch_id: Optional[str] = Field(default=None, index=True)
    recipe_name: str
    packaging_type: str
    quantity: int
    selling_price: Optional[float] = None

    __table_args__ = (
        Index("ix_finished_goods_recipe_packaging", "recipe_name", "packaging_type"),
    )


class SalesRecord(Listed, table=True):
    """
    Invoiced sales. Line items are stored as a JSON list of SaleItem dicts.
    """
    __tablename__ = "sales"

    id: str = Field(default=None, primary_key=True)
    invoice_id: str = Field(index=True)
    customer_id: str = Field(index=True)
    customer_name: str
    customer_email: str = ""
    customer_phone: str = ""
    items: List[Dict] = Field(sa_column=Column(JSON))
    total_amount: float
    payment_method: str
    status: str = Field(default="INVOICED", index=True)
    date_created: int = Field(default=0, nullable=False)


class DailyCostMetrics(Listed, table=True):
    __tablename__ = "daily_costs"

    id: str = Field(default=None, primary_key=True)
    date: str = Field(index=True)
    reference_id: str = ""
    weight_processed: float = 0.0
    processing_hours: float = 0.0
    raw_material_cost: float = 0.0
    packaging_cost: float = 0.0
    labor_cost: float = 0.0
    wastage_cost: float = 0.0
    total_cost: float = 0.0


class MushroomBatch(Listed, table=True):
    """
    Raw mushroom batches. process_config holds the ProcessConfig dict while
    the batch is on the processing floor.
    """
    __tablename__ = "batches"

    id: str = Field(default=None, primary_key=True)
    source_farm: str
    net_weight_kg: float
    remaining_weight_kg: Optional[float] = None
    status: str = Field(default="RECEIVED", index=True)
    date_received: int = 0
    process_config: Optional[Dict] = Field(default=None, sa_column=Column(JSON))
    selected_recipe_name: Optional[str] = None
    recipe_type: Optional[str] = None
    quality_check_passed: Optional[bool] = None
    processing_wastage_kg: Optional[float] = None
    wastage_reason: Optional[str] = None


class Recipe(Listed, table=True):
    __tablename__ = "recipes"

    id: str = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    type: str = "CHIPS"
    base_weight_kg: float = 0.5
    cook_time_minutes: float = 10
    temperature: float = 160
    notes: str = ""
    image_url: str = ""


class Setting(SQLModel, table=True):
    """Key/value store for the labor and raw material rates."""
    __tablename__ = "settings"

    key: str = Field(default=None, primary_key=True)
    value: float
