from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.enums import CharacterRole, GenerationKind, PositionState, SetupStep
from .continuity import ContinuityRecordSchema


# Story bible schemas
class CoreConcept(BaseModel):
    title: str = ""
    theme: str = ""
    logline: str = ""
    genre: str = ""
    setting_time: str = ""
    setting_place: str = ""
    setting_world: str = ""
    style_tone: str = ""
    target_chapter_count: int | None = None
    target_chapter_word_count: int | None = None
    language: str = "English"

    class Config:
        from_attributes = True


class CharacterBase(BaseModel):
    name: str
    role: CharacterRole = CharacterRole.SUPPORTING
    description: str = ""
    background: str = ""
    motivation: str = ""
    arc_or_conflict: str = ""


class CharacterResponse(CharacterBase):
    id: int

    class Config:
        from_attributes = True


class WritingInstructions(BaseModel):
    pov: str = ""
    pacing: str = ""
    dialogue_style: str = ""
    sensory_details: str = ""
    key_elements: str = ""
    avoid: str = ""


class OutlineEntryBase(BaseModel):
    title: str
    summary: str = ""


class OutlineEntryCreate(OutlineEntryBase):
    pass


class OutlineEntryUpdate(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None


class OutlineEntryResponse(OutlineEntryBase):
    id: int
    position: int

    class Config:
        from_attributes = True


class Bible(BaseModel):
    id: int
    core: CoreConcept
    characters: List[CharacterResponse] = []
    outline: List[OutlineEntryResponse] = []
    instructions: WritingInstructions = WritingInstructions()


class ProjectCreate(BaseModel):
    core: CoreConcept = CoreConcept()
    characters: List[CharacterBase] = []
    outline: List[OutlineEntryCreate] = []
    instructions: WritingInstructions = WritingInstructions()


class FullBibleGenerateRequest(BaseModel):
    idea: str = Field(min_length=1)
    target_chapter_count: int = Field(default=8, ge=1, le=200)
    target_chapter_word_count: int = Field(default=1500, ge=100, le=20000)
    language: str = "English"


class SetupStepResponse(BaseModel):
    step: SetupStep
    bible: Bible


# Chapter schemas
class ChapterResponse(BaseModel):
    id: int
    project_id: int
    outline_id: int
    title: str
    content: str
    draft_content: str | None = None
    word_count: int
    continuity_record: ContinuityRecordSchema | None = None

    class Config:
        from_attributes = True


class ChapterGenerateRequest(BaseModel):
    kind: GenerationKind = GenerationKind.CHAPTER_NORMAL
    rewrite_instructions: str | None = None


class OutlinePositionStatus(BaseModel):
    outline_id: int
    position: int
    title: str
    state: PositionState
    word_count: int = 0
    has_draft: bool = False


class CanGenerateResponse(BaseModel):
    outline_id: int
    can_generate: bool
    state: PositionState


class ContextResponse(BaseModel):
    outline_id: int
    context: str


class AnalyzeResponse(BaseModel):
    outline_id: int
    job_id: str | None = None
    continuity_record: ContinuityRecordSchema | None = None


# Credit schemas
class CreditBalanceResponse(BaseModel):
    user_id: str
    credits: int


class GenerationCostsResponse(BaseModel):
    costs: Dict[GenerationKind, int]


# Setting schemas
class SettingUpdate(BaseModel):
    id: int
    value: str


class SettingResponse(BaseModel):
    id: int
    key: str
    title: str | None = None
    section: str | None = None
    value: str
    description: str | None = None
    type: str
    options: str | None = None

    class Config:
        from_attributes = True


class SettingBatchUpdate(BaseModel):
    settings: List[SettingUpdate]
