# database_service.py
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from ..models import database_models  # noqa: F401  registers the tables
from typing import Dict, Any

TABLES = [
    "inventory_items", "purchase_orders", "suppliers", "customers",
    "finished_goods", "sales", "daily_costs", "batches", "recipes", "settings",
]


class DatabaseService:
    def __init__(self, database_url: str = None):
        """
        Initialize the database service.

        Args:
            database_url: SQLAlchemy database URL, e.g. a PostgreSQL URL or
                "sqlite://" for an in-memory database.
        """
        if database_url is None:
            raise RuntimeError("no database url provided")
        if database_url.startswith("sqlite"):
            # in-memory sqlite must share one connection across threads
            self.engine = create_engine(
                database_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                echo=False,  # Set to True for SQL debugging
                pool_pre_ping=True,  # Verify connections before use
                pool_recycle=300,  # Recycle connections every 5 minutes
            )
        self.database_url = database_url

    def create_tables(self) -> Dict[str, Any]:
        """
        Create all tables defined in database_models.py

        Returns:
            Dict with status and details about the operation
        """
        try:
            SQLModel.metadata.create_all(self.engine)
            return {
                "status": "success",
                "message": "All tables created successfully",
                "tables_created": TABLES,
            }
        except Exception as e:
            return {
                "status": "error",
                "message": f"Failed to create tables: {str(e)}",
                "error": str(e)
            }

    def reset_tables(self) -> Dict[str, Any]:
        """
        Drop all tables and recreate them (reset the database)
        """
        try:
            SQLModel.metadata.drop_all(self.engine)
            SQLModel.metadata.create_all(self.engine)

            return {
                "status": "success",
                "message": "Database reset successfully - all tables dropped and recreated",
                "tables_reset": TABLES,
            }
        except Exception as e:
            return {
                "status": "error",
                "message": f"Failed to reset database: {str(e)}",
                "error": str(e)
            }

    def get_session(self) -> Session:
        return Session(self.engine)
