"""Category/subcategory relation endpoints."""

from fastapi import APIRouter, HTTPException

from quickorder.api.deps import Store
from quickorder.errors import NotFound
from quickorder.middleware.cache import invalidate_cache
from quickorder.schemas.category_relation import (
    RelationCreate,
    RelationListResponse,
    RelationResponse,
    RelationUpdate,
)
from quickorder.schemas.common import MessageResponse

router = APIRouter()


def to_list_response(relations) -> RelationListResponse:
    return RelationListResponse(
        relations=[RelationResponse.model_validate(r) for r in relations],
        count=len(relations),
    )


@router.get("", response_model=RelationListResponse)
async def list_relations(store: Store) -> RelationListResponse:
    return to_list_response(await store.relations.list_relations())


@router.get("/active", response_model=RelationListResponse)
async def list_active_relations(store: Store) -> RelationListResponse:
    """Relations currently shown as filters."""
    return to_list_response(await store.relations.list_relations(active_only=True))


@router.post("", response_model=RelationResponse, status_code=201)
async def create_relation(store: Store, data: RelationCreate) -> RelationResponse:
    if await store.relations.get_by_pair(data.category, data.subcategory):
        raise HTTPException(status_code=409, detail="Relation already exists")
    relation = await store.relations.create(data.category, data.subcategory, data.is_active)
    invalidate_cache(store.context)
    return RelationResponse.model_validate(relation)


@router.post("/populate")
async def populate_relations(store: Store) -> dict:
    """Create the relations implied by the mirrored products."""
    products = await store.products.get_all()
    created = await store.relations.populate_from_products(products)
    if created:
        invalidate_cache(store.context)
    return {"success": True, "created_count": created}


@router.patch("/{relation_id}", response_model=RelationResponse)
async def update_relation(
    store: Store, relation_id: str, data: RelationUpdate
) -> RelationResponse:
    """Update a relation, or flip is_active when toggle is set."""
    if data.toggle:
        relation = await store.relations.toggle(relation_id)
    else:
        relation = await store.relations.update(
            relation_id, **data.model_dump(exclude={"toggle"}, exclude_none=True)
        )
    if relation is None:
        raise NotFound("Relation not found")
    invalidate_cache(store.context)
    return RelationResponse.model_validate(relation)


@router.delete("/{relation_id}", response_model=MessageResponse)
async def delete_relation(store: Store, relation_id: str) -> MessageResponse:
    if not await store.relations.delete(relation_id):
        raise NotFound("Relation not found")
    invalidate_cache(store.context)
    return MessageResponse(message="Relation deleted")
