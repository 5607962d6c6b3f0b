from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["low", "medium", "high"]
PRIORITIES = ("low", "medium", "high")

DEFAULT_CATEGORY_COLOR = "#007bff"
HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Lenient date parser for model and client input.

    Accepts datetimes, dates and ISO strings ("2026-02-27", "2026-02-27T10:00:00Z").
    Returns None for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if not raw or raw.lower() in {"null", "none"}:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(raw))
        except ValueError:
            return None
    return None


def _strip_title(v: str) -> str:
    v2 = v.strip()
    if not v2:
        raise ValueError("title must not be blank")
    return v2


def _coerce_date_field(v: Any) -> Any:
    if isinstance(v, str):
        parsed = parse_datetime(v)
        if parsed is None and v.strip() and v.strip().lower() not in {"null", "none"}:
            # left for pydantic to reject
            return v
        return parsed
    if isinstance(v, date):
        return parse_datetime(v)
    return v


class User(BaseModel):
    id: int
    name: str = ""
    email: Optional[str] = None


class Task(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    is_completed: bool = False
    due_date: Optional[datetime] = None
    reminder_date: Optional[datetime] = None
    priority: Priority = "medium"
    estimated_hours: Optional[int] = Field(default=None, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("priority", mode="before")
    @classmethod
    def default_priority(cls, v: Any) -> Any:
        return "medium" if v is None else v


class TaskCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_completed: bool = False
    due_date: Optional[datetime] = None
    reminder_date: Optional[datetime] = None
    priority: Priority = "medium"
    estimated_hours: Optional[int] = Field(default=None, ge=1)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)

    @field_validator("priority", mode="before")
    @classmethod
    def default_priority(cls, v: Any) -> Any:
        return "medium" if v is None else v

    @field_validator("due_date", "reminder_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _coerce_date_field(v)


class TaskUpdate(BaseModel):
    """Partial update; only fields explicitly sent are applied."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_completed: Optional[bool] = None
    due_date: Optional[datetime] = None
    reminder_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    estimated_hours: Optional[int] = Field(default=None, ge=1)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_title(v)

    @field_validator("due_date", "reminder_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _coerce_date_field(v)

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        # title/is_completed/priority can't be cleared, only changed
        for key in ("title", "is_completed"):
            if key in data and data[key] is None:
                del data[key]
        if data.get("priority", "") is None:
            data["priority"] = "medium"
        return data


class Category(BaseModel):
    id: int
    user_id: int
    name: str
    color: str = DEFAULT_CATEGORY_COLOR
    icon: Optional[str] = None
    tasks_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        if "name" in data and data["name"] is None:
            del data["name"]
        if "color" in data and data["color"] is None:
            data["color"] = DEFAULT_CATEGORY_COLOR
        return data


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    due_today: int = 0
    high_priority: int = 0
    total_hours_estimated: int = 0


class TaskAnalysis(BaseModel):
    priority: Priority = "medium"
    estimated_hours: int = Field(default=2, ge=1)
    reasoning: str = "AI analysis complete"
    # "ai" or "rules"; internal, not serialized
    source: str = Field(default="ai", exclude=True)
