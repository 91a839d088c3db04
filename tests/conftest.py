"""
Pytest configuration and shared fixtures for shroomtrack tests.
"""
import pytest
from fastapi.testclient import TestClient
from shroomtrack.api import build_app
from shroomtrack.core.engine import FinanceFacade, ProcessingFacade
from shroomtrack.core.services import CostLedgerService, ProcurementService, ProductionService, SalesService
from shroomtrack.models.api_models import Recipe
from shroomtrack.storage.database_service import DatabaseService
from shroomtrack.storage.storage import InMemoryStorage, SqlStorage
from shroomtrack.utils.clock_adapter import SimulationClock

# 2023-11-14 22:13:20 UTC
START = 1_700_000_000


@pytest.fixture
def clock():
    return SimulationClock(start_time=START)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def sql_storage():
    db = DatabaseService("sqlite://")
    db.create_tables()
    yield SqlStorage(db)
    db.engine.dispose()


@pytest.fixture
def ledger(clock, storage):
    return CostLedgerService(clock, storage)


@pytest.fixture
def procurement(clock, storage):
    return ProcurementService(clock, storage)


@pytest.fixture
def sales(clock, storage):
    return SalesService(clock, storage)


@pytest.fixture
def production(clock, storage, ledger):
    return ProductionService(clock, storage, ledger)


@pytest.fixture
def finance_facade(procurement, sales, ledger, clock):
    return FinanceFacade(procurement, sales, ledger, clock)


@pytest.fixture
def processing_facade(production, clock):
    return ProcessingFacade(production, clock)


@pytest.fixture
def chips_recipe(production):
    recipe = Recipe(id="r-chips", name="Classic Chips", type="CHIPS", base_weight_kg=0.5, cook_time_minutes=5)
    production.save_recipe(recipe)
    return recipe


@pytest.fixture
def client(storage, clock):
    app = build_app(storage, clock, tick_seconds=0)
    return TestClient(app)
