# finance.py
import math
from typing import Dict, List, Tuple
from ..models.api_models import (
    AvailableGood,
    DailyCostMetrics,
    FinancialSummary,
    FinishedGood,
    InventoryItem,
    PieSlice,
    PurchaseOrder,
    RevenuePoint,
    SalesRecord,
)
from ..utils.constants import (
    DEFAULT_SELLING_PRICE,
    FULL_CIRCLE_PATH,
    FULL_CIRCLE_PCT,
    PIE_CATEGORIES,
    SPEND_STATUSES,
)


def summarize(
    purchase_orders: List[PurchaseOrder],
    daily_costs: List[DailyCostMetrics],
    sales: List[SalesRecord],
    finished_goods: List[FinishedGood],
) -> FinancialSummary:
    packaging = sum(p.total_cost for p in purchase_orders if p.status in SPEND_STATUSES)
    raw = sum(d.raw_material_cost for d in daily_costs)
    labor = sum(d.labor_cost for d in daily_costs)
    wastage = sum(d.wastage_cost for d in daily_costs)

    # wastage is a loss, not cash out; daily packaging usage is COGS, not purchasing
    expenses = packaging + raw + labor
    revenue = sum(s.total_amount for s in sales if s.status == "DELIVERED")
    units = sum(g.quantity for g in finished_goods)

    return FinancialSummary(
        packaging_procurement=packaging,
        raw_material_cost=raw,
        labor_cost=labor,
        wastage_cost=wastage,
        cash_flow_expenses=expenses,
        sales_revenue=revenue,
        net_profit=revenue - expenses,
        total_units_produced=units,
        avg_cost_per_unit=expenses / units if units > 0 else 0.0,
    )


def _point(fraction: float) -> Tuple[float, float]:
    return math.cos(2 * math.pi * fraction), math.sin(2 * math.pi * fraction)


def _fmt(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def cost_breakdown(summary: FinancialSummary) -> List[PieSlice]:
    """
    Turn the four expense categories into SVG arc paths on a unit circle.

    Slices are laid out from cumulative fractions. A category holding
    (nearly) all of the spend gets a two-arc full circle, since a single arc
    with identical start and end points draws nothing.
    """
    costs = [
        summary.raw_material_cost,
        summary.packaging_procurement,
        summary.labor_cost,
        summary.wastage_cost,
    ]
    total = sum(costs)

    slices: List[PieSlice] = []
    cumulative = 0.0
    for (label, color), cost in zip(PIE_CATEGORIES, costs):
        pct = cost / total * 100 if total > 0 else 0.0
        if pct <= 0:
            continue
        start_x, start_y = _point(cumulative)
        cumulative += pct / 100
        end_x, end_y = _point(cumulative)
        large_arc = 1 if pct / 100 > 0.5 else 0

        if pct > FULL_CIRCLE_PCT:
            path = FULL_CIRCLE_PATH
        else:
            path = (
                f"M 0 0 L {_fmt(start_x)} {_fmt(start_y)} "
                f"A 1 1 0 {large_arc} 1 {_fmt(end_x)} {_fmt(end_y)} L 0 0"
            )
        slices.append(PieSlice(
            label=label, color=color, cost=cost, pct=pct, path_data=path, index=len(slices),
        ))
    return slices


def revenue_trend(points: List[Dict]) -> List[RevenuePoint]:
    max_revenue = max([p["amount"] for p in points] + [1])
    return [
        RevenuePoint(date=p["date"], amount=p["amount"], height_pct=p["amount"] / max_revenue * 100)
        for p in points
    ]


def low_stock(inventory: List[InventoryItem]) -> List[InventoryItem]:
    return [i for i in inventory if i.quantity < i.threshold]


def product_key(recipe_name: str, packaging_type: str) -> str:
    return f"{recipe_name}|{packaging_type}"


def available_goods(finished_goods: List[FinishedGood]) -> Dict[str, AvailableGood]:
    """Group sellable stock by recipe and packaging for the sales form."""
    grouped: Dict[str, AvailableGood] = {}
    for good in finished_goods:
        if good.quantity <= 0:
            continue
        key = product_key(good.recipe_name, good.packaging_type)
        if key not in grouped:
            grouped[key] = AvailableGood(
                key=key,
                id=good.id,
                label=f"{good.recipe_name} ({good.packaging_type})",
                total_qty=0,
                price=good.selling_price or DEFAULT_SELLING_PRICE,
            )
        grouped[key].total_qty += good.quantity
    return grouped
