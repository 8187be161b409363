import time
from typing import List, Optional

from sqlalchemy import or_

from ..models.models import Chapter, Character, OutlineEntry, Project
from ..schemas.schemas import (
    Bible,
    CharacterBase,
    CharacterResponse,
    CoreConcept,
    OutlineEntryCreate,
    OutlineEntryResponse,
    WritingInstructions,
)
from ..utils.exceptions import OutlineEntryNotFoundException, ProjectNotFoundException, rollback_on_exception
from .base_repository import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    model = Project

    def get_by_id(self, project_id: int) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise ProjectNotFoundException(project_id)
        return project

    @rollback_on_exception
    def create(
        self,
        core: CoreConcept,
        user_id: str,
        instructions: Optional[WritingInstructions] = None,
        characters: Optional[List[CharacterBase]] = None,
        outline: Optional[List[OutlineEntryCreate]] = None,
    ) -> Project:
        current_time = int(time.time())
        project = Project(
            **core.model_dump(),
            instructions=(instructions or WritingInstructions()).model_dump(),
            created_at=current_time,
            updated_at=current_time,
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(project)
        self.db.flush()
        for character in characters or []:
            self.db.add(Character(project_id=project.id, **character.model_dump(mode="json")))
        for position, entry in enumerate(outline or []):
            self.db.add(
                OutlineEntry(
                    project_id=project.id,
                    position=position,
                    title=entry.title,
                    summary=entry.summary,
                    created_at=current_time,
                    updated_at=current_time,
                )
            )
        self.db.commit()
        self.db.refresh(project)
        return project

    @rollback_on_exception
    def update_core(self, project_id: int, core: CoreConcept, user_id: str) -> Project:
        project = self.get_by_id(project_id)
        for key, value in core.model_dump().items():
            setattr(project, key, value)
        project.updated_at = int(time.time())
        project.updated_by = user_id
        self.db.commit()
        self.db.refresh(project)
        return project

    @rollback_on_exception
    def update_instructions(self, project_id: int, instructions: WritingInstructions, user_id: str) -> Project:
        project = self.get_by_id(project_id)
        project.instructions = instructions.model_dump()
        project.updated_at = int(time.time())
        project.updated_by = user_id
        self.db.commit()
        self.db.refresh(project)
        return project

    @rollback_on_exception
    def replace_characters(self, project_id: int, characters: List[CharacterBase], user_id: str) -> Project:
        project = self.get_by_id(project_id)
        self.db.query(Character).filter(Character.project_id == project_id).delete()
        for character in characters:
            self.db.add(Character(project_id=project_id, **character.model_dump(mode="json")))
        project.updated_at = int(time.time())
        project.updated_by = user_id
        self.db.commit()
        self.db.refresh(project)
        return project

    def list_outline(self, project_id: int) -> List[OutlineEntry]:
        return (
            self.db.query(OutlineEntry)
            .filter(OutlineEntry.project_id == project_id)
            .order_by(OutlineEntry.position)
            .all()
        )

    def get_outline_entry(self, project_id: int, outline_id: int) -> OutlineEntry:
        entry = (
            self.db.query(OutlineEntry)
            .filter(OutlineEntry.id == outline_id, OutlineEntry.project_id == project_id)
            .first()
        )
        if not entry:
            raise OutlineEntryNotFoundException(outline_id)
        return entry

    @rollback_on_exception
    def save_outline_entry(
        self, project_id: int, title: str, summary: str, outline_id: Optional[int] = None
    ) -> OutlineEntry:
        """Update an existing entry in place, or append a new one at the end of the outline."""
        current_time = int(time.time())
        if outline_id is not None:
            entry = self.get_outline_entry(project_id, outline_id)
            entry.title = title
            entry.summary = summary
            entry.updated_at = current_time
        else:
            last = (
                self.db.query(OutlineEntry)
                .filter(OutlineEntry.project_id == project_id)
                .order_by(OutlineEntry.position.desc())
                .first()
            )
            entry = OutlineEntry(
                project_id=project_id,
                position=0 if not last else last.position + 1,
                title=title,
                summary=summary,
                created_at=current_time,
                updated_at=current_time,
            )
            self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    @rollback_on_exception
    def replace_outline(self, project_id: int, entries: List[OutlineEntryCreate]) -> List[OutlineEntry]:
        """Callers guarantee no chapter with content exists; leftover empty drafts go with the old outline."""
        self.db.query(Chapter).filter(Chapter.project_id == project_id).delete()
        self.db.query(OutlineEntry).filter(OutlineEntry.project_id == project_id).delete()
        current_time = int(time.time())
        for position, entry in enumerate(entries):
            self.db.add(
                OutlineEntry(
                    project_id=project_id,
                    position=position,
                    title=entry.title,
                    summary=entry.summary,
                    created_at=current_time,
                    updated_at=current_time,
                )
            )
        self.db.commit()
        return self.list_outline(project_id)

    def load_bible(self, project_id: int) -> Bible:
        project = self.get_by_id(project_id)
        return Bible(
            id=project.id,
            core=CoreConcept.model_validate(project),
            characters=[CharacterResponse.model_validate(c) for c in project.characters],
            outline=[OutlineEntryResponse.model_validate(e) for e in self.list_outline(project_id)],
            instructions=WritingInstructions(**(project.instructions or {})),
        )

    # Active generation bookkeeping. Each method is a single conditional UPDATE so that two
    # concurrent requests can never both own the project's generation slot.

    def claim_generation(
        self, project_id: int, outline_id: int, phase: str, claim_token: str, stale_before: int
    ) -> bool:
        changed = self._update_where(
            Project.id == project_id,
            or_(Project.active_outline_id.is_(None), Project.active_started_at < stale_before),
            active_outline_id=outline_id,
            active_phase=phase,
            active_started_at=int(time.time()),
            active_claim_token=claim_token,
        )
        self.db.commit()
        return changed == 1

    def touch_generation(self, project_id: int, claim_token: str, phase: Optional[str] = None) -> bool:
        """Refresh the claim's heartbeat, optionally moving it to ``phase``; False once the claim is lost."""
        values = {"active_started_at": int(time.time())}
        if phase is not None:
            values["active_phase"] = phase
        changed = self._update_where(
            Project.id == project_id, Project.active_claim_token == claim_token, **values
        )
        self.db.commit()
        return changed == 1

    def release_generation(self, project_id: int, claim_token: str) -> bool:
        changed = self._update_where(
            Project.id == project_id,
            Project.active_claim_token == claim_token,
            active_outline_id=None,
            active_phase=None,
            active_started_at=None,
            active_claim_token=None,
        )
        self.db.commit()
        return changed == 1
