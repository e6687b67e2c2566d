from typing import Any, List, Union

from pydantic import BaseModel, Field


class DashboardRequest(BaseModel):
    email: str = Field(..., min_length=1)


class ResultCreate(BaseModel):
    score: float = Field(..., ge=0, le=100)


class WeakTopicsUpdate(BaseModel):
    weakTopics: List[str] = Field(..., max_length=50)


class DashboardUser(BaseModel):
    name: str


class PerformancePoint(BaseModel):
    quizNumber: int
    marks: Union[int, float]


class DashboardResponse(BaseModel):
    user: DashboardUser
    performanceData: List[PerformancePoint]
    result: Any = None  # stored history, unmodified
    weakTopics: List[str]
