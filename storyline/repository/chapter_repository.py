import logging
import re
import time
from typing import List, Optional

from ..models.models import Chapter, ContinuityRecord
from ..schemas.continuity import ContinuityRecordSchema
from ..utils.exceptions import rollback_on_exception
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

WHITESPACE_PATTERN = re.compile(r"\s")


def count_words(content: str) -> int:
    """Word count as the product defines it: the number of non-whitespace characters."""
    return len(WHITESPACE_PATTERN.sub("", content or ""))


class ChapterRepository(BaseRepository[Chapter]):
    model = Chapter

    def get_by_id(self, chapter_id: int) -> Optional[Chapter]:
        return self.db.query(Chapter).filter(Chapter.id == chapter_id).first()

    def get_by_outline_id(self, project_id: int, outline_id: int) -> Optional[Chapter]:
        return (
            self.db.query(Chapter)
            .filter(Chapter.project_id == project_id, Chapter.outline_id == outline_id)
            .first()
        )

    def get_by_project_id(self, project_id: int) -> List[Chapter]:
        return self.db.query(Chapter).filter(Chapter.project_id == project_id).all()

    @rollback_on_exception
    def save_chapter(
        self,
        project_id: int,
        outline_id: int,
        title: str,
        content: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> int:
        """Upsert keyed by (project_id, outline_id); returns the persisted chapter id.

        Retrying a save never creates a second row for the same outline entry.
        """
        current_time = int(time.time())
        chapter = self.get_by_outline_id(project_id, outline_id)
        if chapter is None:
            chapter = Chapter(
                project_id=project_id,
                outline_id=outline_id,
                title=title,
                content=content or "",
                word_count=count_words(content or ""),
                created_at=current_time,
                updated_at=current_time,
                created_by=user_id,
                updated_by=user_id,
            )
            self.db.add(chapter)
        else:
            chapter.title = title
            if content is not None:
                chapter.content = content
                chapter.word_count = count_words(content)
            chapter.updated_at = current_time
            if user_id:
                chapter.updated_by = user_id
        self.db.commit()
        self.db.refresh(chapter)
        return chapter.id

    @rollback_on_exception
    def update_draft(self, chapter_id: int, draft_content: str) -> None:
        chapter = self.get_by_id(chapter_id)
        if chapter is None:
            raise ValueError(f"Chapter {chapter_id} does not exist")
        chapter.draft_content = draft_content
        chapter.updated_at = int(time.time())
        self.db.commit()

    @rollback_on_exception
    def promote_draft(self, chapter_id: int, content: str) -> Chapter:
        """Make freshly streamed prose the chapter content and drop the superseded record.

        Both happen in one transaction: a chapter never carries new prose with an old record.
        """
        chapter = self.get_by_id(chapter_id)
        if chapter is None:
            raise ValueError(f"Chapter {chapter_id} does not exist")
        chapter.content = content
        chapter.draft_content = None
        chapter.word_count = count_words(content)
        chapter.updated_at = int(time.time())
        self.db.query(ContinuityRecord).filter(ContinuityRecord.chapter_id == chapter_id).delete()
        self.db.commit()
        self.db.refresh(chapter)
        return chapter

    @rollback_on_exception
    def save_continuity_record(self, chapter_id: int, record: ContinuityRecordSchema) -> ContinuityRecord:
        existing = self.db.query(ContinuityRecord).filter(ContinuityRecord.chapter_id == chapter_id).first()
        if existing is None:
            existing = ContinuityRecord(chapter_id=chapter_id)
            self.db.add(existing)
        # Replaced wholesale, never merged
        existing.summary = record.summary
        existing.key_events = list(record.key_events)
        existing.items = list(record.items)
        existing.location = record.location
        existing.characters = list(record.characters)
        existing.created_at = int(time.time())
        self.db.commit()
        self.db.refresh(existing)
        logger.info(f"Saved continuity record for chapter {chapter_id} ending at '{record.location}'")
        return existing
