"""Party master API endpoints."""
from math import ceil
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DB, Actor, BusinessId
from backoffice.models.party import PartyType
from backoffice.schemas.base import ListResponse
from backoffice.schemas.party import PartyCreate, PartyResponse, PartyUpdate
from backoffice.services.party_service import PartyService


router = APIRouter()


@router.get("/parties", response_model=ListResponse[PartyResponse])
async def list_parties(
    business_id: BusinessId,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    party_type: Optional[PartyType] = Query(None, alias="type"),
    is_active: Optional[bool] = Query(True),
    search: Optional[str] = Query(None),
):
    items, total = await PartyService(db, business_id).get_parties(
        party_type=party_type, is_active=is_active, search=search, skip=(page - 1) * size, limit=size
    )
    return ListResponse(
        items=[PartyResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.post("/parties", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def create_party(business_id: BusinessId, data: PartyCreate, db: DB, actor_id: Actor):
    party = await PartyService(db, business_id, actor_id).create_party(data)
    return PartyResponse.model_validate(party)


@router.get("/parties/{party_id}", response_model=PartyResponse)
async def get_party(business_id: BusinessId, party_id: uuid.UUID, db: DB, actor_id: Actor):
    return PartyResponse.model_validate(await PartyService(db, business_id).get_party(party_id))


@router.patch("/parties/{party_id}", response_model=PartyResponse)
async def update_party(business_id: BusinessId, party_id: uuid.UUID, data: PartyUpdate, db: DB, actor_id: Actor):
    party = await PartyService(db, business_id, actor_id).update_party(party_id, data)
    return PartyResponse.model_validate(party)


@router.delete("/parties/{party_id}", response_model=PartyResponse)
async def deactivate_party(business_id: BusinessId, party_id: uuid.UUID, db: DB, actor_id: Actor):
    """Deactivate a party. Blocked while it has open purchase orders."""
    party = await PartyService(db, business_id, actor_id).deactivate_party(party_id)
    return PartyResponse.model_validate(party)
