import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..config import DEFAULT_CHAPTER_COUNT, REFUND_POLICY
from ..models.enums import CharacterRole, GenerationKind, RefundPolicy, SetupStep
from ..prompts import format_prompt
from ..prompts.bible import (
    CHARACTERS_PROMPT_V1,
    CORE_PROMPT_V1,
    FULL_BIBLE_PROMPT_V1,
    INSTRUCTIONS_PROMPT_V1,
    OUTLINE_PROMPT_V1,
)
from ..repository.chapter_repository import ChapterRepository
from ..repository.project_repository import ProjectRepository
from ..schemas.schemas import (
    Bible,
    CharacterBase,
    CoreConcept,
    FullBibleGenerateRequest,
    OutlineEntryCreate,
    WritingInstructions,
)
from ..utils.exceptions import GenerationStreamError, PreconditionError
from ..utils.model_settings import ModelSettings
from .ai_service import TextGenerationService
from .credit_ledger import CreditLedger

logger = logging.getLogger(__name__)

REQUIRED_CORE_FIELDS = ("title", "theme", "genre")
TITLE_MARKS = "《》"


def require_core_ready(core: CoreConcept) -> None:
    missing = [field for field in REQUIRED_CORE_FIELDS if not (getattr(core, field) or "").strip()]
    if missing:
        raise PreconditionError(f"Complete the core concept first; missing: {', '.join(missing)}")


def strip_title_marks(title: str) -> str:
    for mark in TITLE_MARKS:
        title = title.replace(mark, "")
    return title.strip()


def coerce_role(value: Any) -> CharacterRole:
    text = str(value or "").strip().lower()
    for role in CharacterRole:
        if role.value.lower() == text:
            return role
    return CharacterRole.SUPPORTING


def _parse_core(raw: Dict[str, Any], base: Optional[CoreConcept] = None) -> CoreConcept:
    fields = (base or CoreConcept()).model_dump()
    for key in ("title", "theme", "logline", "genre", "setting_time", "setting_place", "setting_world", "style_tone"):
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            fields[key] = value.strip()
    fields["title"] = strip_title_marks(fields["title"])
    return CoreConcept(**fields)


def _parse_characters(raw: Any) -> List[CharacterBase]:
    if not isinstance(raw, list):
        raise ValueError("characters must be a list")
    characters = []
    for item in raw:
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            continue
        characters.append(
            CharacterBase(
                name=str(item["name"]).strip(),
                role=coerce_role(item.get("role")),
                description=str(item.get("description") or ""),
                background=str(item.get("background") or ""),
                motivation=str(item.get("motivation") or ""),
                arc_or_conflict=str(item.get("arc_or_conflict") or item.get("arcOrConflict") or ""),
            )
        )
    return characters


def _parse_outline(raw: Any) -> List[OutlineEntryCreate]:
    if not isinstance(raw, list):
        raise ValueError("outline must be a list")
    entries = [
        OutlineEntryCreate(title=strip_title_marks(str(item["title"])), summary=str(item.get("summary") or ""))
        for item in raw
        if isinstance(item, dict) and str(item.get("title") or "").strip()
    ]
    if not entries:
        raise ValueError("outline has no usable chapters")
    return entries


def _parse_instructions(raw: Any) -> WritingInstructions:
    if not isinstance(raw, dict):
        raise ValueError("instructions must be an object")
    return WritingInstructions(
        **{key: str(raw.get(key) or "") for key in WritingInstructions.model_fields}
    )


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


class BibleService:
    """Setup assistant that drafts a story bible, whole or one page at a time."""

    def __init__(
        self,
        db: Session,
        text_service: Optional[TextGenerationService] = None,
        refund_policy: str | RefundPolicy = REFUND_POLICY,
    ):
        self.db = db
        self.project_repo = ProjectRepository(db)
        self.chapter_repo = ChapterRepository(db)
        self.ledger = CreditLedger(db)
        self.model_settings = ModelSettings(db)
        self.text_service = text_service or TextGenerationService()
        self.refund_policy = RefundPolicy(refund_policy)

    async def generate_full_bible(self, user_id: str, request: FullBibleGenerateRequest) -> Bible:
        kind = GenerationKind.COMPLETE_SETUP
        self.ledger.reserve(user_id, kind)
        prompt = format_prompt(
            FULL_BIBLE_PROMPT_V1,
            idea=request.idea,
            target_chapter_count=request.target_chapter_count,
            target_chapter_word_count=request.target_chapter_word_count,
            language=request.language,
        )
        try:
            raw = await self.text_service.complete_json(prompt, self.model_settings.bible_generation())
            core = _parse_core(
                raw.get("core") or {},
                CoreConcept(
                    target_chapter_count=request.target_chapter_count,
                    target_chapter_word_count=request.target_chapter_word_count,
                    language=request.language,
                ),
            )
            require_core_ready(core)
            characters = _parse_characters(raw.get("characters") or [])
            outline = _parse_outline(raw.get("outline"))
            instructions = _parse_instructions(raw.get("instructions") or {})
        except Exception as e:
            self._settle_failure(user_id, kind)
            raise GenerationStreamError(f"Story bible generation failed: {str(e)}") from e

        project = self.project_repo.create(core, user_id, instructions, characters, outline)
        logger.info(
            f"Created project {project.id} '{core.title}' with {len(characters)} characters "
            f"and {len(outline)} outline entries"
        )
        return self.project_repo.load_bible(project.id)

    async def generate_setup_step(self, project_id: int, user_id: str, step: SetupStep) -> Bible:
        step = SetupStep(step)
        bible = self.project_repo.load_bible(project_id)
        if step != SetupStep.CORE:
            require_core_ready(bible.core)
        if step == SetupStep.OUTLINE and self._has_generated_chapters(project_id):
            raise PreconditionError("The outline cannot be regenerated once chapters have been written")

        kind = GenerationKind.SINGLE_PAGE_SETUP
        self.ledger.reserve(user_id, kind)
        core_json = _to_json(bible.core.model_dump(mode="json"))
        characters_json = _to_json([c.model_dump(mode="json", exclude={"id"}) for c in bible.characters])
        try:
            if step == SetupStep.CORE:
                raw = await self._complete(CORE_PROMPT_V1, current_core=core_json, language=bible.core.language)
                self.project_repo.update_core(project_id, _parse_core(raw, bible.core), user_id)
            elif step == SetupStep.CHARACTERS:
                raw = await self._complete(
                    CHARACTERS_PROMPT_V1,
                    core=core_json,
                    current_characters=characters_json,
                    language=bible.core.language,
                )
                characters = _parse_characters(raw.get("characters"))
                if not characters:
                    raise ValueError("no usable characters")
                self.project_repo.replace_characters(project_id, characters, user_id)
            elif step == SetupStep.OUTLINE:
                raw = await self._complete(
                    OUTLINE_PROMPT_V1,
                    core=core_json,
                    characters=characters_json,
                    target_chapter_count=bible.core.target_chapter_count or len(bible.outline) or DEFAULT_CHAPTER_COUNT,
                    language=bible.core.language,
                )
                self.project_repo.replace_outline(project_id, _parse_outline(raw.get("outline")))
            else:
                raw = await self._complete(
                    INSTRUCTIONS_PROMPT_V1, core=core_json, characters=characters_json, language=bible.core.language
                )
                self.project_repo.update_instructions(project_id, _parse_instructions(raw), user_id)
        except (ValueError, ValidationError, GenerationStreamError) as e:
            self._settle_failure(user_id, kind)
            raise GenerationStreamError(f"{step.value} generation failed: {str(e)}") from e

        logger.info(f"Project {project_id}: {step.value} page generated")
        return self.project_repo.load_bible(project_id)

    async def _complete(self, template: str, **variables) -> Dict[str, Any]:
        prompt = format_prompt(template, **variables)
        try:
            return await self.text_service.complete_json(prompt, self.model_settings.bible_generation())
        except Exception as e:
            raise GenerationStreamError(str(e)) from e

    def _has_generated_chapters(self, project_id: int) -> bool:
        return any(chapter.content for chapter in self.chapter_repo.get_by_project_id(project_id))

    def _settle_failure(self, user_id: str, kind: GenerationKind) -> None:
        if self.refund_policy != RefundPolicy.NEVER:
            self.ledger.refund(user_id, kind)
            logger.info(f"Refunded {kind.value} for user {user_id}")
