import asyncio
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from sqlalchemy.orm import Session

from ..config import DEFAULT_CHAPTER_WORD_COUNT, DRAFT_FLUSH_EVERY, REFUND_POLICY
from ..constants.metrics import Constants
from ..metrics.statsd_client import statsd
from ..models.enums import CHAPTER_KINDS, GenerationKind, GenerationPhase, PositionState, RefundPolicy
from ..models.models import OutlineEntry
from ..prompts import format_prompt
from ..prompts.chapters import CHAPTER_GENERATION_PROMPT_V1
from ..repository.chapter_repository import ChapterRepository
from ..repository.project_repository import ProjectRepository
from ..schemas.continuity import ContinuityRecordSchema, GenerationEvent
from ..schemas.schemas import Bible
from ..utils.exceptions import (
    ChapterNotFoundException,
    ExtractionError,
    GenerationStreamError,
    PreconditionError,
)
from ..utils.model_settings import ModelSettings
from .ai_service import TextGenerationService
from .bible_service import require_core_ready
from .context_assembler import ContextAssembler, PriorChapter, assemble_context, predecessor_record
from .continuity_extractor import ContinuityExtractor
from .credit_ledger import CreditLedger
from .pending_writes import PendingWriteQueue
from .sequence_gate import SequenceGate

logger = logging.getLogger(__name__)

LONG_CHAPTER_MULTIPLIER = 2


@dataclass
class GenerationRun:
    project_id: int
    outline_id: int
    chapter_id: int
    user_id: str
    kind: GenerationKind
    title: str
    prompt: str
    language: str
    claim_token: str
    phase: GenerationPhase = GenerationPhase.CONTEXT_BUILT
    record: Optional[ContinuityRecordSchema] = None


def build_chapter_prompt(
    bible: Bible,
    entry: OutlineEntry,
    position: int,
    prior: List[PriorChapter],
    context: str,
    kind: GenerationKind,
) -> str:
    word_count_target = bible.core.target_chapter_word_count or DEFAULT_CHAPTER_WORD_COUNT
    if kind == GenerationKind.CHAPTER_LONG:
        word_count_target *= LONG_CHAPTER_MULTIPLIER

    record = predecessor_record(prior, position)
    starting_location = record.location if record is not None else "unknown"

    bible_json = json.dumps(bible.model_dump(mode="json", exclude={"id"}), ensure_ascii=False, indent=2)
    return format_prompt(
        CHAPTER_GENERATION_PROMPT_V1,
        bible=bible_json,
        continuity_context=context,
        chapter_title=entry.title,
        chapter_summary=entry.summary or "(no summary provided)",
        language=bible.core.language,
        word_count_target=word_count_target,
        starting_location=starting_location,
    )


class ChapterGenerator:
    """Orchestrates one chapter generation.

    ``start`` runs VALIDATING (gate, bible, outline entry), claims the project's generation
    slot and reserves credits, then builds the prompt. Everything that can reject a request
    happens there, before any model call. ``stream`` drives STREAMING -> ANALYZING ->
    PERSISTED and yields events as they happen.

    New prose is buffered in ``draft_content`` until the stream completes, so a failed or
    abandoned stream never destroys the previous content or continuity record.
    """

    def __init__(
        self,
        db: Session,
        text_service: Optional[TextGenerationService] = None,
        refund_policy: str | RefundPolicy = REFUND_POLICY,
        draft_flush_every: int = DRAFT_FLUSH_EVERY,
    ):
        self.db = db
        self.project_repo = ProjectRepository(db)
        self.chapter_repo = ChapterRepository(db)
        self.gate = SequenceGate(db)
        self.ledger = CreditLedger(db)
        self.assembler = ContextAssembler(db, self.gate)
        self.model_settings = ModelSettings(db)
        self.text_service = text_service or TextGenerationService()
        self.extractor = ContinuityExtractor(self.text_service, self.model_settings.continuity_extraction())
        self.refund_policy = RefundPolicy(refund_policy)
        self.draft_flush_every = max(1, draft_flush_every)

    def can_generate(self, project_id: int, outline_id: int) -> bool:
        return self.gate.can_generate(project_id, outline_id)

    def get_context(self, project_id: int, outline_id: int, rewrite_instructions: Optional[str] = None) -> str:
        return self.assembler.get_context(project_id, outline_id, rewrite_instructions)

    def start(
        self,
        project_id: int,
        outline_id: int,
        user_id: str,
        kind: GenerationKind = GenerationKind.CHAPTER_NORMAL,
        rewrite_instructions: Optional[str] = None,
    ) -> GenerationRun:
        kind = GenerationKind(kind)
        logger.info(f"Validating {kind.value} generation for project {project_id}, outline entry {outline_id}")

        if kind not in CHAPTER_KINDS:
            raise PreconditionError(f"'{kind.value}' is not a chapter generation kind")
        bible = self.project_repo.load_bible(project_id)
        entry = self.project_repo.get_outline_entry(project_id, outline_id)
        self.gate.ensure_can_start(project_id, outline_id)
        require_core_ready(bible.core)
        if not entry.title or not entry.title.strip():
            raise PreconditionError(f"Outline entry {outline_id} needs a title before it can be generated")

        claim_token = self.gate.claim(project_id, outline_id)
        try:
            self.ledger.reserve(user_id, kind)
        except Exception:
            self.gate.release(project_id, claim_token)
            raise

        try:
            position, prior = self.assembler.prior_chapters(project_id, outline_id)
            context = assemble_context(prior, rewrite_instructions, position)
            prompt = build_chapter_prompt(bible, entry, position, prior, context, kind)
            # Created lazily on first generation; existing content is left untouched
            chapter_id = self.chapter_repo.save_chapter(project_id, outline_id, entry.title, user_id=user_id)
        except Exception:
            logger.error(f"Could not prepare generation for outline entry {outline_id}", exc_info=True)
            if self.refund_policy != RefundPolicy.NEVER:
                self.ledger.refund(user_id, kind)
            self.gate.release(project_id, claim_token)
            raise

        statsd.increment(Constants.Metric.GENERATION_STARTED, 1, {Constants.Tag.KIND: kind.value})
        return GenerationRun(
            project_id=project_id,
            outline_id=outline_id,
            chapter_id=chapter_id,
            user_id=user_id,
            kind=kind,
            title=entry.title,
            prompt=prompt,
            language=bible.core.language,
            claim_token=claim_token,
        )

    async def stream(self, run: GenerationRun) -> AsyncIterator[GenerationEvent]:
        fragments: List[str] = []
        drafts = PendingWriteQueue(self.chapter_repo.update_draft)
        try:
            run.phase = GenerationPhase.STREAMING
            stream = self.text_service.stream_completion(run.prompt, self.model_settings.chapter_generation())
            try:
                async for fragment in stream:
                    if not fragment:
                        continue
                    fragments.append(fragment)
                    drafts.put(run.chapter_id, "".join(fragments))
                    if len(fragments) % self.draft_flush_every == 0:
                        drafts.flush()
                        self._keep_claim(run)
                    yield GenerationEvent(type="content", content=fragment)
            except (GeneratorExit, asyncio.CancelledError, GenerationStreamError):
                raise
            except Exception as e:
                raise GenerationStreamError(f"Text generation failed mid-stream: {str(e)}") from e
            finally:
                drafts.flush()
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

            content = "".join(fragments)
            if not content.strip():
                raise GenerationStreamError("Text generation returned no content")

            run.phase = GenerationPhase.ANALYZING
            if not self.gate.mark_analyzing(run.project_id, run.claim_token):
                raise GenerationStreamError("Generation slot was taken over before the chapter could be saved")
            # The superseded record is discarded here, not earlier
            self.chapter_repo.promote_draft(run.chapter_id, content)
            yield GenerationEvent(type="phase", phase=GenerationPhase.ANALYZING)

            record = await self.extractor.extract(content, run.title, run.language)
            self.chapter_repo.save_continuity_record(run.chapter_id, record)
            run.record = record
            run.phase = GenerationPhase.PERSISTED
            self.gate.release(run.project_id, run.claim_token)
            statsd.increment(Constants.Metric.GENERATION_PERSISTED, 1, {Constants.Tag.KIND: run.kind.value})
            logger.info(f"Outline entry {run.outline_id} persisted with {len(content)} characters")

            yield GenerationEvent(type="record", record=record)
        except GenerationStreamError:
            logger.error(f"Stream failed for outline entry {run.outline_id}; partial draft kept")
            self._settle_failure(run, "stream")
            raise
        except ExtractionError:
            logger.error(f"Extraction failed for outline entry {run.outline_id}; chapter left without a record")
            self._settle_failure(run, "extraction")
            raise
        except (GeneratorExit, asyncio.CancelledError):
            if run.phase != GenerationPhase.PERSISTED:
                logger.info(f"Generation for outline entry {run.outline_id} was cancelled by the caller")
                self._settle_failure(run, "cancelled")
            raise
        except Exception:
            logger.error(f"Unexpected failure generating outline entry {run.outline_id}", exc_info=True)
            self._settle_failure(run, "unexpected")
            raise
        finally:
            self.gate.release(run.project_id, run.claim_token)

    async def generate(
        self,
        project_id: int,
        outline_id: int,
        user_id: str,
        kind: GenerationKind = GenerationKind.CHAPTER_NORMAL,
        rewrite_instructions: Optional[str] = None,
    ) -> AsyncIterator[GenerationEvent]:
        run = self.start(project_id, outline_id, user_id, kind, rewrite_instructions)
        async for event in self.stream(run):
            yield event

    async def retry_extraction(self, project_id: int, outline_id: int) -> ContinuityRecordSchema:
        """Re-run analysis for a chapter whose prose exists but whose record does not."""
        project = self.project_repo.get_by_id(project_id)
        self.project_repo.get_outline_entry(project_id, outline_id)
        chapter = self.chapter_repo.get_by_outline_id(project_id, outline_id)
        if chapter is None:
            raise ChapterNotFoundException(outline_id)
        if chapter.continuity_record is not None:
            raise PreconditionError(f"Outline entry {outline_id} already has a continuity record")
        if not chapter.content or not chapter.content.strip():
            raise PreconditionError(f"Outline entry {outline_id} has no finished prose to analyze")

        claim_token = self.gate.claim(project_id, outline_id, PositionState.ANALYZING)
        try:
            record = await self.extractor.extract(chapter.content, chapter.title, project.language)
            self.chapter_repo.save_continuity_record(chapter.id, record)
            logger.info(f"Retried extraction for outline entry {outline_id} succeeded")
            return record
        finally:
            self.gate.release(project_id, claim_token)

    def _keep_claim(self, run: GenerationRun) -> None:
        if not self.gate.heartbeat(run.project_id, run.claim_token):
            raise GenerationStreamError("Generation slot was taken over by another request")

    def _settle_failure(self, run: GenerationRun, stage: str) -> None:
        run.phase = GenerationPhase.FAILED
        statsd.increment(Constants.Metric.GENERATION_FAILED, 1, {Constants.Tag.STAGE: stage})
        if self._should_refund(stage):
            self.ledger.refund(run.user_id, run.kind)
            logger.info(f"Refunded {run.kind.value} for user {run.user_id} after {stage} failure")

    def _should_refund(self, stage: str) -> bool:
        if self.refund_policy == RefundPolicy.ANY_FAILURE:
            return True
        if self.refund_policy == RefundPolicy.STREAM_FAILURE:
            return stage == "stream"
        return False
