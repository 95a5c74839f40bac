from pydantic import BaseModel, field_validator
from typing import Any, List, Optional, Union


def is_blank(value: Any) -> bool:
    """
    JSON values the front-end treats as missing: null, false, "" and 0.

    Empty arrays and objects are not blank.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (str, int, float)):
        return not value
    return False


def _field(value: Any) -> Any:
    """Blank values become "", anything else is forwarded to the model as-is."""
    return "" if is_blank(value) else value


class ChatArticle(BaseModel):
    index: int
    title: Any = ""
    description: Any = ""
    category: Any = ""
    source: Any = ""
    url: Any = ""

    @field_validator("title", "description", "category", "source", "url", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        return _field(value)


class ScoringArticle(BaseModel):
    index: int
    title: Any = ""
    description: Any = ""
    content: Any = ""
    category: Any = ""
    source: Any = ""
    sourceKey: Any = ""

    @field_validator(
        "title", "description", "content", "category", "source", "sourceKey", mode="before"
    )
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        return _field(value)


class ChatResponse(BaseModel):
    answer: str

class ScoreResponse(BaseModel):
    scores: List[Union[int, float]]

class ErrorResponse(BaseModel):
    error: str
    status: Optional[int] = None

class HealthResponse(BaseModel):
    status: str
    version: str
