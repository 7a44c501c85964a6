"""Push token and badge count endpoints for the mobile app."""

from fastapi import APIRouter, Query

from quickorder.api.deps import Store
from quickorder.errors import NotFound
from quickorder.schemas.common import MessageResponse
from quickorder.schemas.device import BadgeCountResponse, PushTokenRegister, PushTokenResponse

router = APIRouter()


@router.post("/tokens", response_model=PushTokenResponse)
async def register_token(store: Store, data: PushTokenRegister) -> PushTokenResponse:
    token = await store.devices.register_token(data)
    return PushTokenResponse.model_validate(token)


@router.get("/tokens", response_model=list[PushTokenResponse])
async def list_tokens(
    store: Store,
    user_email: str | None = Query(None, description="Only tokens of this user"),
) -> list[PushTokenResponse]:
    tokens = await store.devices.list_tokens(user_email)
    return [PushTokenResponse.model_validate(t) for t in tokens]


@router.delete("/tokens/{token}", response_model=MessageResponse)
async def delete_token(store: Store, token: str) -> MessageResponse:
    if not await store.devices.delete_token(token):
        raise NotFound("Token not found")
    return MessageResponse(message="Token deleted")


@router.get("/badges/{email}", response_model=BadgeCountResponse)
async def get_badge(store: Store, email: str) -> BadgeCountResponse:
    return BadgeCountResponse(user_email=email, badge_count=await store.devices.get_badge(email))


@router.post("/badges/{email}/increment", response_model=BadgeCountResponse)
async def increment_badge(store: Store, email: str) -> BadgeCountResponse:
    count = await store.devices.increment_badge(email)
    return BadgeCountResponse(user_email=email, badge_count=count)


@router.post("/badges/{email}/reset", response_model=BadgeCountResponse)
async def reset_badge(store: Store, email: str) -> BadgeCountResponse:
    count = await store.devices.reset_badge(email)
    return BadgeCountResponse(user_email=email, badge_count=count)
