"""SQLModel database engine and table setup."""

import logging

from sqlalchemy import inspect
from sqlmodel import SQLModel, create_engine

from hyperdca.config import settings

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread=False; PostgreSQL does not
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
)


def _run_migrations():
    """Run lightweight schema migrations for constraints older databases lack."""
    from sqlalchemy import text

    inspector = inspect(engine)

    if "wallet_transaction" not in inspector.get_table_names():
        return

    # Sync upserts rely on a unique (user_id, hyperliquid_tx_hash) index
    existing_indexes = inspector.get_indexes("wallet_transaction")
    existing_uniques = inspector.get_unique_constraints("wallet_transaction")
    has_unique = any(
        idx.get("unique") and idx["column_names"] == ["user_id", "hyperliquid_tx_hash"]
        for idx in existing_indexes
    ) or any(uc["column_names"] == ["user_id", "hyperliquid_tx_hash"] for uc in existing_uniques)
    if not has_unique:
        logger.info("Migrating: adding unique index on wallet_transaction (user_id, hyperliquid_tx_hash)")
        with engine.connect() as conn:
            conn.execute(text(
                "CREATE UNIQUE INDEX IF NOT EXISTS ix_wallet_transaction_user_tx_hash "
                "ON wallet_transaction (user_id, hyperliquid_tx_hash)"
            ))
            conn.commit()


def create_db_and_tables():
    """Create all tables. Called on startup."""
    import hyperdca.models  # noqa: F401  registers tables on SQLModel.metadata

    SQLModel.metadata.create_all(engine)
    _run_migrations()
