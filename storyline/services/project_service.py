import logging
import re
from typing import List, Tuple

from sqlalchemy.orm import Session

from ..models.models import Chapter
from ..repository.chapter_repository import ChapterRepository
from ..repository.project_repository import ProjectRepository
from ..schemas.schemas import (
    Bible,
    CharacterBase,
    CoreConcept,
    OutlineEntryCreate,
    OutlineEntryUpdate,
    OutlinePositionStatus,
    ProjectCreate,
    WritingInstructions,
)
from ..utils.exceptions import ChapterNotFoundException, PreconditionError
from .sequence_gate import SequenceGate

logger = logging.getLogger(__name__)


def create_project(db: Session, user_id: str, payload: ProjectCreate) -> Bible:
    repo = ProjectRepository(db)
    project = repo.create(payload.core, user_id, payload.instructions, payload.characters, payload.outline)
    logger.info(f"User {user_id} created project {project.id}")
    return repo.load_bible(project.id)


def get_bible(db: Session, project_id: int) -> Bible:
    return ProjectRepository(db).load_bible(project_id)


def update_core(db: Session, project_id: int, core: CoreConcept, user_id: str) -> Bible:
    repo = ProjectRepository(db)
    repo.update_core(project_id, core, user_id)
    return repo.load_bible(project_id)


def update_instructions(db: Session, project_id: int, instructions: WritingInstructions, user_id: str) -> Bible:
    repo = ProjectRepository(db)
    repo.update_instructions(project_id, instructions, user_id)
    return repo.load_bible(project_id)


def replace_characters(db: Session, project_id: int, characters: List[CharacterBase], user_id: str) -> Bible:
    repo = ProjectRepository(db)
    repo.replace_characters(project_id, characters, user_id)
    return repo.load_bible(project_id)


def add_outline_entry(db: Session, project_id: int, entry: OutlineEntryCreate) -> Bible:
    repo = ProjectRepository(db)
    repo.get_by_id(project_id)
    repo.save_outline_entry(project_id, entry.title, entry.summary)
    return repo.load_bible(project_id)


def update_outline_entry(db: Session, project_id: int, outline_id: int, update: OutlineEntryUpdate) -> Bible:
    """Outline entries are editable only until their chapter has been written."""
    repo = ProjectRepository(db)
    project = repo.get_by_id(project_id)
    entry = repo.get_outline_entry(project_id, outline_id)
    if project.active_outline_id == outline_id:
        raise PreconditionError(f"Outline entry {outline_id} is being generated and cannot be edited")
    chapter = ChapterRepository(db).get_by_outline_id(project_id, outline_id)
    if chapter is not None and chapter.content:
        raise PreconditionError(f"Outline entry {outline_id} already has a chapter and can no longer be edited")

    repo.save_outline_entry(
        project_id,
        update.title if update.title is not None else entry.title,
        update.summary if update.summary is not None else entry.summary,
        outline_id=outline_id,
    )
    return repo.load_bible(project_id)


def get_outline_status(db: Session, project_id: int) -> List[OutlinePositionStatus]:
    gate = SequenceGate(db)
    chapters = {c.outline_id: c for c in ChapterRepository(db).get_by_project_id(project_id)}
    statuses = []
    for entry, state in gate.states(project_id):
        chapter = chapters.get(entry.id)
        statuses.append(
            OutlinePositionStatus(
                outline_id=entry.id,
                position=entry.position,
                title=entry.title,
                state=state,
                word_count=chapter.word_count if chapter else 0,
                has_draft=bool(chapter and chapter.draft_content),
            )
        )
    return statuses


def get_chapters(db: Session, project_id: int) -> List[Chapter]:
    ProjectRepository(db).get_by_id(project_id)
    return ChapterRepository(db).get_by_project_id(project_id)


def get_chapter(db: Session, project_id: int, outline_id: int) -> Chapter:
    ProjectRepository(db).get_outline_entry(project_id, outline_id)
    chapter = ChapterRepository(db).get_by_outline_id(project_id, outline_id)
    if chapter is None:
        raise ChapterNotFoundException(outline_id)
    return chapter


def manuscript_filename(core: CoreConcept) -> str:
    stem = core.title.strip() or core.theme.strip() or "story"
    return re.sub(r"\s+", "_", stem) + ".md"


def export_manuscript(db: Session, project_id: int) -> Tuple[str, str]:
    """Written chapters joined in outline order as one Markdown document; returns (filename, text)."""
    bible = ProjectRepository(db).load_bible(project_id)
    index = SequenceGate(db).build_index(project_id)
    sections = []
    for i in range(len(index)):
        chapter = index.chapter_at(i)
        if chapter is None or not chapter.content:
            continue
        sections.append(f"# {chapter.title or index.entry_at(i).title}\n\n{chapter.content}")
    logger.info(f"Exporting {len(sections)} chapters of project {project_id}")
    return manuscript_filename(bible.core), "\n\n---\n\n".join(sections)
