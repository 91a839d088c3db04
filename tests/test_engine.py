import threading
import pytest
from fastapi import HTTPException
from shroomtrack.core.engine import FinanceFacade
from shroomtrack.core.services import ProcurementService
from shroomtrack.core.ticker import FloorTicker
from shroomtrack.models.api_models import (
    CompleteBatchRequest,
    FinishedGood,
    PurchaseOrderRequest,
    QCRequest,
    RecipeRequest,
    SaleRequest,
    ServiceResult,
    SupplierRequest,
    CustomerRequest,
)


# --- Processing floor ---
def test_floor_lists_only_active_batches(processing_facade, production):
    received = production.receive_batch("Farm A", 1.0).data
    done = production.receive_batch("Farm B", 1.0).data
    production.update_batch_status(done.id, "PACKAGED")

    floor = processing_facade.floor()
    assert [card.batch.id for card in floor.batches] == [received.id]
    assert floor.batches[0].stage is None


def test_start_requires_a_recipe(processing_facade, production):
    batch = production.receive_batch("Farm A", 1.0).data
    with pytest.raises(HTTPException) as exc:
        processing_facade.start_batch(batch.id, "r-any")
    assert exc.value.status_code == 400
    assert exc.value.detail == "Please create a recipe first!"


def test_batch_runs_through_stages(processing_facade, production, chips_recipe, clock):
    batch = production.receive_batch("Farm A", 1.0).data
    started = processing_facade.start_batch(batch.id, chips_recipe.id)
    config = started.process_config
    # 1 kg over a 0.5 kg base doubles wash and cook
    assert (config.wash_duration_seconds, config.drain_duration_seconds, config.cook_duration_seconds) == (120, 120, 600)
    assert started.selected_recipe_name == "Classic Chips"

    card = processing_facade.floor().batches[0]
    assert card.stage == "WASH"
    assert card.time_left_display == "2:00"

    clock.tick(150)
    card = processing_facade.floor().batches[0]
    assert card.stage == "DRAIN"
    assert card.time_left_seconds == 90

    clock.tick(100)
    card = processing_facade.floor().batches[0]
    assert card.stage == "COOK"
    assert card.label == "FRYING PROCESS"
    assert card.warning == "DANGER: HOT OIL 160°C"


def test_switch_recipe_keeps_running_clock(processing_facade, production, chips_recipe, clock):
    slow = processing_facade.save_recipe(RecipeRequest(name="Dried Slices", type="DEHYDRATED", cook_time_minutes=30))
    batch = production.receive_batch("Farm A", 0.5).data
    started = processing_facade.start_batch(batch.id, chips_recipe.id)
    clock.tick(30)

    switched = processing_facade.switch_recipe(batch.id, slow.id)
    assert switched.process_config.start_time == started.process_config.start_time
    assert switched.process_config.cook_duration_seconds == 1800
    assert switched.selected_recipe_name == "Dried Slices"


def test_complete_needs_finished_cycle_and_valid_qc(processing_facade, production, chips_recipe, storage):
    batch = production.receive_batch("Farm A", 2.0).data
    processing_facade.start_batch(batch.id, chips_recipe.id)

    with pytest.raises(HTTPException) as exc:
        processing_facade.complete_batch(batch.id, CompleteBatchRequest(good_weight_kg=2.0))
    assert exc.value.detail == "Batch cycle has not finished yet"

    processing_facade.speed_up(batch.id)
    assert processing_facade.floor().batches[0].stage == "COMPLETE"

    with pytest.raises(HTTPException) as exc:
        processing_facade.complete_batch(batch.id, CompleteBatchRequest(good_weight_kg=1.0, wastage_weight_kg=0.5, wastage_reason="Burnt"))
    assert exc.value.status_code == 400
    assert "must match Input" in exc.value.detail
    # rejected before anything was written
    assert storage.get("batches", batch.id).status == "PROCESSING"

    finished = processing_facade.complete_batch(batch.id, CompleteBatchRequest(
        good_weight_kg=1.7, wastage_weight_kg=0.3, wastage_reason="Other", custom_reason="fell off belt",
    ))
    assert finished.status == "DRYING_COMPLETE"
    assert finished.quality_check_passed is True
    assert finished.processing_wastage_kg == 0.3
    assert finished.wastage_reason == "Other: fell off belt"
    assert processing_facade.floor().batches == []


# --- Recipes ---
def test_recipe_defaults_and_duplicate_names(processing_facade):
    recipe = processing_facade.save_recipe(RecipeRequest(name="Truffle Chips"))
    assert recipe.type == "CHIPS"
    assert recipe.base_weight_kg == 0.5
    assert recipe.cook_time_minutes == 10
    assert recipe.temperature == 160

    with pytest.raises(HTTPException) as exc:
        processing_facade.save_recipe(RecipeRequest(name="truffle chips"))
    assert exc.value.detail == "A recipe with this name already exists!"

    # renaming itself to the same name is fine
    updated = processing_facade.save_recipe(RecipeRequest(name="Truffle Chips", notes="extra salt"), recipe.id)
    assert updated.id == recipe.id
    assert updated.notes == "extra salt"


def test_remove_duplicates_keeps_first(processing_facade, production):
    from shroomtrack.models.api_models import Recipe

    production.save_recipe(Recipe(id="r1", name="Chips"))
    production.save_recipe(Recipe(id="r2", name=" chips "))
    production.save_recipe(Recipe(id="r3", name="Jerky"))
    production.save_recipe(Recipe(id="r4", name="CHIPS"))

    result = processing_facade.remove_duplicates()
    assert result.removed == 2
    assert [r.id for r in result.recipes] == ["r1", "r3"]
    assert processing_facade.remove_duplicates().message == "No duplicates found."


def test_delete_all_recipes(processing_facade):
    processing_facade.save_recipe(RecipeRequest(name="A"))
    processing_facade.save_recipe(RecipeRequest(name="B"))
    assert processing_facade.delete_all_recipes() == 2
    assert processing_facade.list_recipes() == []


# --- Finance ---
def test_supplier_brings_its_inventory_item(finance_facade):
    supplier = finance_facade.add_supplier(SupplierRequest(name="PackCo", item_name="Vacuum Pouch"))
    dashboard = finance_facade.dashboard()
    assert [s.id for s in dashboard.suppliers] == [supplier.id]
    item = dashboard.inventory[0]
    assert (item.quantity, item.threshold, item.pack_size, item.unit_cost) == (0, 50, 100, 45.0)
    assert item.supplier == "PackCo"
    assert [i.id for i in dashboard.low_stock] == [item.id]


def test_failed_qc_needs_reason(finance_facade):
    finance_facade.add_supplier(SupplierRequest(name="PackCo", item_name="Vacuum Pouch"))
    item = finance_facade.dashboard().inventory[0]
    order = finance_facade.create_purchase_order(PurchaseOrderRequest(item_id=item.id, packages=2))

    with pytest.raises(HTTPException):
        finance_facade.record_qc(order.id, QCRequest(passed=False))
    complaint = finance_facade.record_qc(order.id, QCRequest(passed=False, complaint_reason="Torn seals"))
    assert complaint.status == "COMPLAINT"
    assert [p.id for p in finance_facade.dashboard().complaints] == [order.id]


def test_sale_flow_feeds_dashboard(finance_facade, sales):
    customer = finance_facade.add_customer(CustomerRequest(name="Corner Cafe"))
    sales.add_finished_good(FinishedGood(id="fg1", recipe_name="Chips", packaging_type="POUCH", quantity=10, selling_price=18.0))

    with pytest.raises(HTTPException) as exc:
        finance_facade.create_sale(SaleRequest(customer_id=customer.id))
    assert exc.value.detail == "Please select customer and product."

    sale = finance_facade.create_sale(SaleRequest(customer_id=customer.id, product_key="Chips|POUCH", quantity=3))
    assert sale.total_amount == 54.0
    assert finance_facade.dashboard().summary.sales_revenue == 0.0

    finance_facade.mark_delivered(sale.id)
    dashboard = finance_facade.dashboard()
    assert dashboard.summary.sales_revenue == 54.0
    assert dashboard.revenue_trend[-1].amount == 54.0
    assert dashboard.revenue_trend[-1].height_pct == 100.0

    invoice = finance_facade.invoice(sale.id)
    assert invoice.lines[0].line_total == 54.0
    assert invoice.status == "DELIVERED"


class _FlakyProcurement(ProcurementService):
    fail_inventory = False

    def get_inventory(self) -> ServiceResult:
        if self.fail_inventory:
            return ServiceResult(success=False, message="sheet unavailable")
        return super().get_inventory()


def test_failed_fetch_keeps_previous_dataset(clock, storage, sales, ledger):
    procurement = _FlakyProcurement(clock, storage)
    facade = FinanceFacade(procurement, sales, ledger, clock)
    facade.add_supplier(SupplierRequest(name="PackCo", item_name="Vacuum Pouch"))
    assert len(facade.dashboard().inventory) == 1

    procurement.fail_inventory = True
    facade.add_supplier(SupplierRequest(name="TinWorks", item_name="Tin"))
    dashboard = facade.dashboard()
    assert len(dashboard.inventory) == 1
    assert len(dashboard.suppliers) == 2


# --- Ticker ---
def test_ticker_pushes_cards_and_drops_failing_subscribers(processing_facade, production, chips_recipe, clock):
    batch = production.receive_batch("Farm A", 0.5).data
    processing_facade.start_batch(batch.id, chips_recipe.id)
    ticker = FloorTicker(processing_facade)

    seen = []
    ticker.subscribe(lambda cards: seen.append([c.stage for c in cards]))

    def broken(cards):
        raise RuntimeError("boom")

    ticker.subscribe(broken)
    ticker.tick()
    clock.tick(61)
    ticker.tick()
    assert seen == [["WASH"], ["DRAIN"]]
    assert broken not in ticker._subscribers


def test_ticker_runs_until_stopped(processing_facade):
    ticker = FloorTicker(processing_facade, interval_seconds=0.01)
    ticked = threading.Event()
    ticker.subscribe(lambda cards: ticked.set())

    ticker.start()
    assert ticked.wait(timeout=2.0)
    ticker.stop()
    assert not ticker.running
