"""
Processed Webhook Event Repository

DB-backed record of handled Stripe events (survives restarts).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models import ProcessedWebhookEvent, utcnow
from app.infrastructure.db.repositories.base_repository import BaseRepository


class WebhookEventRepository(BaseRepository[ProcessedWebhookEvent]):

    def __init__(self, session: AsyncSession):
        super().__init__(ProcessedWebhookEvent, session)

    async def is_processed(self, event_id: str) -> bool:
        """Check if a webhook event has already been processed."""
        return await self.get_by_id(event_id) is not None

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        """Record a processed webhook event; repeats are ignored."""
        stmt = self.insert().values(
            event_id=event_id,
            event_type=event_type,
            processed_at=utcnow(),
        )
        await self._session.execute(stmt.on_conflict_do_nothing(index_elements=["event_id"]))
