"""CRUD API for DCA plans."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from hyperdca.api.deps import get_current_profile, get_store
from hyperdca.models import DcaPlan, Profile
from hyperdca.schemas.dca_plan import DcaExecutionRead, DcaPlanCreate, DcaPlanRead, DcaPlanUpdate
from hyperdca.services.store import Store

router = APIRouter(prefix="/api/dca", tags=["dca"])


def _owned_plan(plan_id: int, profile: Profile, store: Store) -> DcaPlan:
    plan = store.get_plan(plan_id)
    if not plan or plan.user_id != profile.id:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


@router.get("/plans", response_model=list[DcaPlanRead])
def list_plans(
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    return store.list_plans(profile.id)


@router.post("/plans", response_model=DcaPlanRead, status_code=201)
def create_plan(
    data: DcaPlanCreate,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    payload = data.model_dump()
    if payload["next_execution_at"] is None:
        payload["next_execution_at"] = datetime.now(timezone.utc)
    return store.create_plan(user_id=profile.id, **payload)


@router.get("/plans/{plan_id}", response_model=DcaPlanRead)
def get_plan(
    plan_id: int,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    return _owned_plan(plan_id, profile, store)


@router.put("/plans/{plan_id}", response_model=DcaPlanRead)
def update_plan(
    plan_id: int,
    data: DcaPlanUpdate,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    _owned_plan(plan_id, profile, store)
    updates = data.model_dump(exclude_unset=True)
    return store.update_plan(plan_id, updates)


@router.delete("/plans/{plan_id}", status_code=204)
def delete_plan(
    plan_id: int,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    _owned_plan(plan_id, profile, store)
    store.delete_plan(plan_id)


@router.get("/plans/{plan_id}/executions", response_model=list[DcaExecutionRead])
def list_executions(
    plan_id: int,
    limit: int = 50,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    _owned_plan(plan_id, profile, store)
    return store.list_executions(plan_id, limit=limit)
