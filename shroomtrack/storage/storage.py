# storage.py
import threading
from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Type
from pydantic import BaseModel
from sqlmodel import SQLModel, func, select
from ..models import api_models
from ..models import database_models as orm

# collection name -> (api model, ORM table)
COLLECTIONS: Dict[str, tuple] = {
    "inventory": (api_models.InventoryItem, orm.InventoryItem),
    "purchase_orders": (api_models.PurchaseOrder, orm.PurchaseOrder),
    "suppliers": (api_models.Supplier, orm.Supplier),
    "customers": (api_models.Customer, orm.Customer),
    "finished_goods": (api_models.FinishedGood, orm.FinishedGood),
    "sales": (api_models.SalesRecord, orm.SalesRecord),
    "daily_costs": (api_models.DailyCostMetrics, orm.DailyCostMetrics),
    "batches": (api_models.MushroomBatch, orm.MushroomBatch),
    "recipes": (api_models.Recipe, orm.Recipe),
}


class AbstractStorage(ABC):
    @abstractmethod
    def save(self, collection: str, record: BaseModel) -> None:
        pass
    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[BaseModel]:
        pass
    @abstractmethod
    def list(self, collection: str) -> List[BaseModel]:
        pass
    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        pass
    @abstractmethod
    def get_setting(self, key: str) -> Optional[float]:
        pass
    @abstractmethod
    def set_setting(self, key: str, value: float) -> None:
        pass

# ------------------------------------------------------------------
class InMemoryStorage(AbstractStorage):
    """Dict-backed storage, safe to share between the ticker and request threads."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, BaseModel]] = {name: {} for name in COLLECTIONS}
        self._settings: Dict[str, float] = {}
        self._lock = threading.Lock()

    def save(self, collection: str, record: BaseModel) -> None:
        copy = record.model_copy(deep=True)
        with self._lock:
            self._records[collection][record.id] = copy

    def get(self, collection: str, record_id: str) -> Optional[BaseModel]:
        with self._lock:
            record = self._records[collection].get(record_id)
        return record.model_copy(deep=True) if record else None

    def list(self, collection: str) -> List[BaseModel]:
        with self._lock:
            records = list(self._records[collection].values())
        return [r.model_copy(deep=True) for r in records]

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._records[collection].pop(record_id, None) is not None

    def get_setting(self, key: str) -> Optional[float]:
        with self._lock:
            return self._settings.get(key)

    def set_setting(self, key: str, value: float) -> None:
        with self._lock:
            self._settings[key] = value

# ------------------------------------------------------------------
class SqlStorage(AbstractStorage):
    """Storage over sqlmodel tables. Opens one short-lived session per call."""

    def __init__(self, db_service):
        self._db = db_service

    @staticmethod
    def _to_api(collection: str, row: SQLModel) -> BaseModel:
        api_cls: Type[BaseModel] = COLLECTIONS[collection][0]
        return api_cls.model_validate(row.model_dump())

    def save(self, collection: str, record: BaseModel) -> None:
        orm_cls = COLLECTIONS[collection][1]
        data = record.model_dump()
        with self._db.get_session() as session:
            row = session.get(orm_cls, record.id)
            if row is None:
                last = session.exec(select(func.max(orm_cls.seq))).one()
                session.add(orm_cls(**data, seq=(last or 0) + 1))
            else:
                for key, value in data.items():
                    setattr(row, key, value)
                session.add(row)
            session.commit()

    def get(self, collection: str, record_id: str) -> Optional[BaseModel]:
        orm_cls = COLLECTIONS[collection][1]
        with self._db.get_session() as session:
            row = session.get(orm_cls, record_id)
            return self._to_api(collection, row) if row else None

    def list(self, collection: str) -> List[BaseModel]:
        orm_cls = COLLECTIONS[collection][1]
        with self._db.get_session() as session:
            rows = session.exec(select(orm_cls).order_by(orm_cls.seq)).all()
            return [self._to_api(collection, row) for row in rows]

    def delete(self, collection: str, record_id: str) -> bool:
        orm_cls = COLLECTIONS[collection][1]
        with self._db.get_session() as session:
            row = session.get(orm_cls, record_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def get_setting(self, key: str) -> Optional[float]:
        with self._db.get_session() as session:
            row = session.get(orm.Setting, key)
            return row.value if row else None

    def set_setting(self, key: str, value: float) -> None:
        with self._db.get_session() as session:
            session.merge(orm.Setting(key=key, value=value))
            session.commit()
