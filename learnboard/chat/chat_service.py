"""
Mock tutor replies

No model is called. The reply is a pure function of the message and the
student's weak topics so the same inputs always give the same text.
"""

import hashlib
import logging
from typing import List, Optional, Sequence

from learnboard.users.user_store import IdentityStore

logger = logging.getLogger(__name__)

MOCK_MODEL = "mock-ai-model"

_INTENT_KEYWORDS = (
    ("explain", ("explain", "what is", "what are", "why", "how does", "how do", "understand")),
    ("practice", ("practice", "quiz", "question", "exercise", "test", "problem")),
    ("help", ("help", "stuck", "confused", "difficult", "hard", "struggling")),
)

_TEMPLATES = {
    "explain": (
        "Let's break down {topic} step by step. Start with the core definition, "
        "then work through one small example before moving to harder cases. "
        "Try explaining {topic} back in your own words once you have read it."
    ),
    "practice": (
        "Here is a practice plan for {topic}: solve three short questions, check "
        "each answer straight away, and note any step you had to guess. "
        "Repeat the ones you missed tomorrow."
    ),
    "help": (
        "No worries, {topic} trips up a lot of students. Go back to the last "
        "example you fully understood and find the exact step where it stops "
        "making sense. Tell me that step and we will fix it together."
    ),
    "default": (
        "Good question! Since {topic} is one of the areas you are working on, "
        "let's connect your question to it and review the key ideas of {topic} "
        "as we go."
    ),
}


def detect_intent(message: str) -> str:
    lowered = message.lower()
    for intent, keywords in _INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return "default"


def pick_focus_topic(message: str, topics: Sequence[str]) -> str:
    """A topic named in the message wins; otherwise pick one from the message digest"""
    lowered = message.lower()
    for topic in topics:
        if topic.lower() in lowered:
            return topic
    digest = hashlib.sha256(message.encode("utf-8")).digest()
    return topics[int.from_bytes(digest[:4], "big") % len(topics)]


def generate_mock_response(message: Optional[str], weak_topics: Sequence[str]) -> str:
    message = (message or "").strip()
    topics = [topic.strip() for topic in weak_topics if isinstance(topic, str) and topic.strip()]

    if not topics:
        if not message:
            return "Hi! Ask me anything about your studies and I will help you work through it."
        return (
            f'You asked: "{message}". Let\'s work through it together. Once you have '
            "finished a few quizzes I can tailor my answers to the topics you find hardest."
        )

    focus = pick_focus_topic(message, topics)
    parts = []
    if message:
        parts.append(f'You asked: "{message}".')
    parts.append(_TEMPLATES[detect_intent(message)].format(topic=focus))

    others = [topic for topic in topics if topic != focus]
    if others:
        parts.append("After that, we can also review: " + ", ".join(others) + ".")
    return " ".join(parts)


class ChatService:
    def __init__(self, store: IdentityStore):
        self.store = store

    async def reply(self, email: str, message: Optional[str]) -> dict:
        user = await self.store.find_by_email(email)
        weak_topics: List[str] = user.weak_topics if user else []
        logger.info("Processing chat request with %d weak topics", len(weak_topics))

        return {
            "text": generate_mock_response(message, weak_topics),
            "model": MOCK_MODEL,
        }
