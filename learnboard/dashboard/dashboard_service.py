import logging
from typing import List

from learnboard.core.errors import NotFound
from learnboard.users.user_models import Score, User
from learnboard.users.user_store import IdentityStore

logger = logging.getLogger(__name__)


def build_dashboard(user: User) -> dict:
    """Shape a user document into the dashboard payload"""
    return {
        "user": {"name": user.name},
        "performanceData": user.results.performance_series(),
        "result": user.raw_result,
        "weakTopics": list(user.weak_topics),
    }


class DashboardService:
    def __init__(self, store: IdentityStore):
        self.store = store

    async def get_dashboard(self, email: str) -> dict:
        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFound("User not found")
        return build_dashboard(user)

    async def record_result(self, email: str, score: Score) -> dict:
        user = await self.store.record_result(email, score)
        logger.info("Recorded quiz result for %s", user.id)
        return build_dashboard(user)

    async def set_weak_topics(self, email: str, topics: List[str]) -> dict:
        cleaned = []
        for topic in topics:
            topic = topic.strip()
            if topic and topic not in cleaned:
                cleaned.append(topic)
        user = await self.store.set_weak_topics(email, cleaned)
        return build_dashboard(user)
