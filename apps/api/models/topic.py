"""
Topic models: content ideas tracked from idea to publication.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class SeriesType(str, Enum):
    KNOWLEDGE = "knowledge"
    HOTSPOT = "hotspot"
    DIAGRAM = "diagram"


class StatusType(str, Enum):
    IDEA = "idea"
    SCRIPTING = "scripting"
    PUBLISHED = "published"


SERIES_LABELS = {
    SeriesType.KNOWLEDGE: "秒懂金融小知识",
    SeriesType.HOTSPOT: "每天秒懂一个财经热点",
    SeriesType.DIAGRAM: "一图学金融",
}

STATUS_LABELS = {
    StatusType.IDEA: "灵感 / 待选",
    StatusType.SCRIPTING: "正在创作",
    StatusType.PUBLISHED: "已发布",
}


def _blank_date_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Topic(BaseModel):
    """A content idea as persisted by the store."""
    id: str
    title: str
    note: str = ""
    series: SeriesType = SeriesType.KNOWLEDGE
    status: StatusType = StatusType.IDEA
    is_urgent: bool = False
    target_date: Optional[date] = None
    created_at: str
    updated_at: str

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("note", mode="before")
    @classmethod
    def _note_text(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("is_urgent", mode="before")
    @classmethod
    def _urgent_flag(cls, value):
        return False if value is None else value

    blank_target_date = field_validator("target_date", mode="before")(_blank_date_to_none)


class TopicDraft(BaseModel):
    """Topic fields as submitted from the editor; id is absent for new ideas."""
    id: Optional[str] = None
    title: str
    note: Optional[str] = ""
    series: SeriesType = SeriesType.KNOWLEDGE
    status: Optional[StatusType] = None
    is_urgent: bool = False
    target_date: Optional[date] = None

    blank_target_date = field_validator("target_date", mode="before")(_blank_date_to_none)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value


class TopicChanges(BaseModel):
    """Partial topic update; only fields explicitly set are applied."""
    title: Optional[str] = None
    note: Optional[str] = None
    series: Optional[SeriesType] = None
    status: Optional[StatusType] = None
    is_urgent: Optional[bool] = None
    target_date: Optional[date] = None

    blank_target_date = field_validator("target_date", mode="before")(_blank_date_to_none)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    def to_patch(self) -> dict:
        """Explicitly set fields; only note and target_date may be cleared with null."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in {"note", "target_date"}
        }


class TopicStatusUpdate(BaseModel):
    status: StatusType
