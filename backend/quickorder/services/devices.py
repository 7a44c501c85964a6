"""Push tokens and badge counters registered by mobile clients."""

from sqlalchemy import delete, select

from quickorder.models import BadgeCount, PushToken
from quickorder.schemas.device import PushTokenRegister
from quickorder.services.repository import Repository


class DeviceRepository(Repository):
    """Storage for mobile device registrations."""

    async def register_token(self, data: PushTokenRegister) -> PushToken:
        """Store a push token, re-assigning it when it is already known."""
        async with self.session() as session:
            result = await session.execute(select(PushToken).where(PushToken.token == data.token))
            token = result.scalar_one_or_none()
            if token is None:
                token = PushToken(**data.model_dump())
                session.add(token)
            else:
                for field, value in data.model_dump().items():
                    setattr(token, field, value)
            await session.commit()
            await session.refresh(token)
            return token

    async def list_tokens(self, user_email: str | None = None) -> list[PushToken]:
        query = select(PushToken).order_by(PushToken.created_at.desc())
        if user_email:
            query = query.where(PushToken.user_email == user_email)
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def delete_token(self, token: str) -> bool:
        async with self.session() as session:
            result = await session.execute(delete(PushToken).where(PushToken.token == token))
            await session.commit()
            return result.rowcount > 0

    async def get_badge(self, user_email: str) -> int:
        async with self.session() as session:
            result = await session.execute(
                select(BadgeCount).where(BadgeCount.user_email == user_email)
            )
            badge = result.scalar_one_or_none()
            return badge.badge_count if badge else 0

    async def increment_badge(self, user_email: str, by: int = 1) -> int:
        async with self.session() as session:
            result = await session.execute(
                select(BadgeCount).where(BadgeCount.user_email == user_email)
            )
            badge = result.scalar_one_or_none()
            if badge is None:
                badge = BadgeCount(user_email=user_email, badge_count=0)
                session.add(badge)
            badge.badge_count = (badge.badge_count or 0) + by
            count = badge.badge_count
            await session.commit()
            return count

    async def reset_badge(self, user_email: str) -> int:
        async with self.session() as session:
            result = await session.execute(
                select(BadgeCount).where(BadgeCount.user_email == user_email)
            )
            badge = result.scalar_one_or_none()
            if badge is not None:
                badge.badge_count = 0
                await session.commit()
            return 0
