from typing import Dict, List

ONE_MINUTE = 60
ONE_HOUR = ONE_MINUTE * 60

# Processing floor
WASH_SECONDS_PER_BASE_WEIGHT = 60
DRAIN_DURATION_SECONDS = 120
DEFAULT_BASE_WEIGHT_KG = 0.5
QC_WEIGHT_TOLERANCE_KG = 0.1
FLOOR_TICK_SECONDS = 1.0
ACTIVE_BATCH_STATUSES = ("RECEIVED", "PROCESSING")

STAGE_WASH = "WASH"
STAGE_DRAIN = "DRAIN"
STAGE_COOK = "COOK"
STAGE_COMPLETE = "COMPLETE"

# label, warning per stage; COOK depends on the recipe type
STAGE_DISPLAY: Dict[str, Dict[str, str]] = {
    STAGE_WASH: {"label": "WASHING CYCLE", "warning": "CAUTION: ROTATING DRUM ACTIVE"},
    STAGE_DRAIN: {"label": "DRAINING / AIR DRY", "warning": "HIGH VELOCITY AIRFLOW"},
    "COOK_CHIPS": {"label": "FRYING PROCESS", "warning": "DANGER: HOT OIL 160°C"},
    "COOK_OTHER": {"label": "DEHYDRATION", "warning": "HEAT CHAMBER SEALED"},
    STAGE_COMPLETE: {"label": "CYCLE COMPLETE", "warning": "SAFE TO UNLOAD"},
}

WASTAGE_REASONS: List[str] = [
    "Discoloration",
    "Texture Issue",
    "Contamination",
    "Burnt",
    "Other",
]

# Recipe defaults
DEFAULT_RECIPE_TYPE = "CHIPS"
DEFAULT_COOK_TIME_MINUTES = 10
DEFAULT_TEMPERATURE = 160

# Finance
DEFAULT_LABOR_RATE = 12.50  # per processing hour
DEFAULT_RAW_MATERIAL_RATE = 8.00  # per kg of raw mushrooms
LABOR_RATE_KEY = "labor_rate"
RAW_MATERIAL_RATE_KEY = "raw_material_rate"
DEFAULT_SELLING_PRICE = 15.00
DEFAULT_SUPPLIER = "Generic Supplier"
REVENUE_TREND_DAYS = 7
PAYMENT_METHODS = ("CASH", "COD", "CREDIT_CARD")

# New supplier items
DEFAULT_ITEM_THRESHOLD = 50
DEFAULT_ITEM_UNIT = "units"

SPEND_STATUSES = ("ORDERED", "RECEIVED")
COMPLAINT_RESOLUTIONS: List[str] = [
    "Replacement Received",
    "Refund Processed",
    "Closed (No Action)",
]
REPLACEMENT_RESOLUTION = "Replacement Received"

# Cost breakdown pie: label, colour
PIE_CATEGORIES = [
    ("Raw Materials", "#15803d"),
    ("Packaging", "#16a34a"),
    ("Labor", "#3b82f6"),
    ("Wastage (Loss)", "#ef4444"),
]
FULL_CIRCLE_PCT = 99.9
FULL_CIRCLE_PATH = "M 1 0 A 1 1 0 1 1 -1 0 A 1 1 0 1 1 1 0"
