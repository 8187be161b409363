from typing import List, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..models.enums import GenerationPhase


class ContinuityRecordSchema(BaseModel):
    summary: str
    key_events: List[str] = Field(validation_alias=AliasChoices("key_events", "keyEvents"))
    items: List[str]
    location: str
    characters: List[str]

    class Config:
        from_attributes = True

    @field_validator("summary", "location")
    @classmethod
    def must_not_be_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("key_events", "items", "characters", mode="before")
    @classmethod
    def clean_list(cls, value):
        if not isinstance(value, list):
            raise ValueError("must be a list of strings")
        return [str(v).strip() for v in value if v is not None and str(v).strip()]


class GenerationEvent(BaseModel):
    type: Literal["content", "phase", "record"]
    content: str | None = None
    phase: GenerationPhase | None = None
    record: ContinuityRecordSchema | None = None
