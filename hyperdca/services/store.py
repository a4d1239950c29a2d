"""Persistence for profiles, trades, holdings and DCA plans.

Every method runs in its own session so callers never share mutable ORM state
across requests. Multi-field updates are flushed as one UPDATE in one
transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from hyperdca.models import DcaExecution, DcaPlan, Profile, WalletBalance, WalletHolding, WalletTransaction
from hyperdca.services.errors import ProfileNotFound
from hyperdca.utils.constants import TRANSACTION_CONFLICT_KEYS

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Store:
    def __init__(self, engine: Engine):
        self.engine = engine

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, profile_id: int) -> Profile | None:
        with Session(self.engine) as session:
            return session.get(Profile, profile_id)

    def require_profile(self, profile_id: int) -> Profile:
        profile = self.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFound(f"Profile {profile_id} not found")
        return profile

    def get_profile_by_identity(self, subject: str) -> Profile | None:
        with Session(self.engine) as session:
            return session.exec(select(Profile).where(Profile.identity_subject == subject)).first()

    def create_profile(self, **fields: Any) -> Profile:
        with Session(self.engine) as session:
            profile = Profile(**fields)
            session.add(profile)
            session.commit()
            session.refresh(profile)
            return profile

    def update_profile(self, profile_id: int, fields: dict[str, Any]) -> Profile:
        with Session(self.engine) as session:
            profile = session.get(Profile, profile_id)
            if profile is None:
                raise ProfileNotFound(f"Profile {profile_id} not found")
            for key, value in fields.items():
                setattr(profile, key, value)
            profile.updated_at = _now()
            session.add(profile)
            session.commit()
            session.refresh(profile)
            return profile

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def insert_transaction(self, record: dict[str, Any]) -> WalletTransaction:
        with Session(self.engine) as session:
            tx = WalletTransaction(**record)
            session.add(tx)
            session.commit()
            session.refresh(tx)
            return tx

    def upsert_transaction(
        self,
        record: dict[str, Any],
        conflict_keys: Iterable[str] = TRANSACTION_CONFLICT_KEYS,
    ) -> None:
        """Insert or update on the conflict keys. Raises if the store has no matching constraint."""
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upsert not supported on {dialect}")

        keys = list(conflict_keys)
        values = {"created_at": _now(), **record}
        stmt = insert(WalletTransaction.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=keys,
            set_={k: stmt.excluded[k] for k in record if k not in keys},
        )
        with self.engine.connect() as conn:
            conn.execute(stmt)
            conn.commit()

    def transaction_hashes(self, user_id: int) -> set[str]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(WalletTransaction.hyperliquid_tx_hash).where(WalletTransaction.user_id == user_id)
            ).all()
            return {r for r in rows if r}

    def list_transactions(self, user_id: int, limit: int = 50, offset: int = 0) -> list[WalletTransaction]:
        with Session(self.engine) as session:
            stmt = (
                select(WalletTransaction)
                .where(WalletTransaction.user_id == user_id)
                .order_by(WalletTransaction.timestamp.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.exec(stmt).all())

    # ------------------------------------------------------------------
    # Holdings and balance
    # ------------------------------------------------------------------

    def replace_holdings(self, user_id: int, records: list[dict[str, Any]]) -> None:
        """Holdings are a cache: drop the user's rows and insert fresh ones atomically."""
        with Session(self.engine) as session:
            for holding in session.exec(select(WalletHolding).where(WalletHolding.user_id == user_id)).all():
                session.delete(holding)
            for record in records:
                session.add(WalletHolding(user_id=user_id, **record))
            session.commit()

    def list_holdings(self, user_id: int) -> list[WalletHolding]:
        with Session(self.engine) as session:
            stmt = select(WalletHolding).where(WalletHolding.user_id == user_id)
            return list(session.exec(stmt).all())

    def upsert_balance(self, user_id: int, record: dict[str, Any]) -> WalletBalance:
        with Session(self.engine) as session:
            balance = session.exec(select(WalletBalance).where(WalletBalance.user_id == user_id)).first()
            if balance is None:
                balance = WalletBalance(user_id=user_id)
            for key, value in record.items():
                setattr(balance, key, value)
            session.add(balance)
            session.commit()
            session.refresh(balance)
            return balance

    def get_balance(self, user_id: int) -> WalletBalance | None:
        with Session(self.engine) as session:
            return session.exec(select(WalletBalance).where(WalletBalance.user_id == user_id)).first()

    # ------------------------------------------------------------------
    # DCA plans and executions
    # ------------------------------------------------------------------

    def list_plans(self, user_id: int) -> list[DcaPlan]:
        with Session(self.engine) as session:
            stmt = select(DcaPlan).where(DcaPlan.user_id == user_id).order_by(DcaPlan.created_at.desc())
            return list(session.exec(stmt).all())

    def get_plan(self, plan_id: int) -> DcaPlan | None:
        with Session(self.engine) as session:
            return session.get(DcaPlan, plan_id)

    def create_plan(self, **fields: Any) -> DcaPlan:
        with Session(self.engine) as session:
            plan = DcaPlan(**fields)
            session.add(plan)
            session.commit()
            session.refresh(plan)
            return plan

    def update_plan(self, plan_id: int, fields: dict[str, Any]) -> DcaPlan | None:
        with Session(self.engine) as session:
            plan = session.get(DcaPlan, plan_id)
            if plan is None:
                return None
            for key, value in fields.items():
                setattr(plan, key, value)
            plan.updated_at = _now()
            session.add(plan)
            session.commit()
            session.refresh(plan)
            return plan

    def delete_plan(self, plan_id: int) -> bool:
        with Session(self.engine) as session:
            plan = session.get(DcaPlan, plan_id)
            if plan is None:
                return False
            for execution in session.exec(select(DcaExecution).where(DcaExecution.plan_id == plan_id)).all():
                session.delete(execution)
            session.delete(plan)
            session.commit()
            return True

    def due_plans(self, now: datetime) -> list[DcaPlan]:
        with Session(self.engine) as session:
            stmt = select(DcaPlan).where(
                DcaPlan.is_active == True,  # noqa: E712
                DcaPlan.next_execution_at != None,  # noqa: E711
                DcaPlan.next_execution_at <= now,
            ).order_by(DcaPlan.next_execution_at, DcaPlan.id)
            return list(session.exec(stmt).all())

    def insert_execution(self, record: dict[str, Any]) -> DcaExecution:
        with Session(self.engine) as session:
            execution = DcaExecution(**record)
            session.add(execution)
            session.commit()
            session.refresh(execution)
            return execution

    def list_executions(self, plan_id: int, limit: int = 50) -> list[DcaExecution]:
        with Session(self.engine) as session:
            stmt = (
                select(DcaExecution)
                .where(DcaExecution.plan_id == plan_id)
                .order_by(DcaExecution.executed_at.desc())
                .limit(limit)
            )
            return list(session.exec(stmt).all())
