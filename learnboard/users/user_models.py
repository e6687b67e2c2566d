import logging
from typing import Any, List, Literal, Optional, Union

from bson import Decimal128, ObjectId
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Score = Union[int, float]


# ==================== RESULT HISTORY ====================

class ResultEntry(BaseModel):
    position: int  # 0-based
    score: Score


class ResultHistory(BaseModel):
    """
    Quiz results as stored on the user document.

    Older documents keep results as a list, newer ones as an object keyed by
    the stringified position. The shape is resolved once here; callers only
    see ordered entries.
    """
    kind: Literal["sequence", "mapping"] = "sequence"
    entries: List[ResultEntry] = Field(default_factory=list)

    @classmethod
    def from_document(cls, raw: Any) -> "ResultHistory":
        if isinstance(raw, dict):
            entries = []
            for key, value in raw.items():
                position = _position_of(key)
                if position is None:
                    logger.warning("Skipping non-numeric result key %r", key)
                    continue
                entries.append(ResultEntry(position=position, score=_score_of(value)))
            entries.sort(key=lambda entry: entry.position)
            return cls(kind="mapping", entries=entries)

        if isinstance(raw, list):
            return cls(
                kind="sequence",
                entries=[ResultEntry(position=i, score=_score_of(v)) for i, v in enumerate(raw)],
            )

        if raw is not None:
            logger.warning("Ignoring result history of type %s", type(raw).__name__)
        return cls(kind="sequence", entries=[])

    def performance_series(self) -> List[dict]:
        return [
            {"quizNumber": entry.position + 1, "marks": entry.score}
            for entry in self.entries
        ]

    def next_position(self) -> int:
        if not self.entries:
            return 0
        return max(entry.position for entry in self.entries) + 1


def _position_of(key: Any) -> Optional[int]:
    """Mapping keys are canonical decimal positions: "0", "1", ... ("01", "+1", "1_0" are not)"""
    if not isinstance(key, str) or not (key.isascii() and key.isdigit()):
        return None
    if len(key) > 1 and key.startswith("0"):
        return None
    return int(key)


def to_plain(value: Any) -> Any:
    """Replace BSON-only values so a stored document can be echoed as JSON"""
    if isinstance(value, dict):
        return {str(key): to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return float(value.to_decimal())
    return value


def _score_of(value: Any) -> Score:
    """A result is either a bare number or {"score": number}; anything else is 0"""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, dict):
        score = value.get("score")
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            return score
    return 0


# ==================== USER ====================

class User(BaseModel):
    """
    Stored user document (collection: users)
    """
    id: str
    email: str
    name: str = ""
    password_hash: Optional[str] = None
    standard: Optional[str] = None  # grade / level tag
    weak_topics: List[str] = Field(default_factory=list)
    results: ResultHistory = Field(default_factory=ResultHistory)
    raw_result: Any = None

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        topics = doc.get("weaktopics") or []
        result = to_plain(doc.get("result"))
        return cls(
            id=str(doc.get("_id", "")),
            email=doc["email"],
            name=doc.get("name") or "",
            password_hash=doc.get("password"),
            standard=doc.get("standard"),
            weak_topics=[str(topic) for topic in topics],
            results=ResultHistory.from_document(result),
            raw_result=result,
        )
