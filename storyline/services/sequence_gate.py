import logging
import time
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..config import ACTIVE_GENERATION_TIMEOUT_SECONDS
from ..models.enums import PositionState
from ..models.models import Chapter, OutlineEntry, Project
from ..repository.chapter_repository import ChapterRepository
from ..repository.project_repository import ProjectRepository
from ..utils.exceptions import GenerationInProgress, OutlineEntryNotFoundException, SequenceViolation

logger = logging.getLogger(__name__)


def is_complete(chapter: Optional[Chapter]) -> bool:
    """A chapter counts as done only once its continuity record exists."""
    return chapter is not None and chapter.continuity_record is not None


class OutlineIndex:
    """Ordered view of an outline: position -> entry -> chapter.

    Built from the integer ``position`` column, never from chapter titles.
    """

    def __init__(self, entries: Sequence[OutlineEntry], chapters: Sequence[Chapter]):
        self.entries: List[OutlineEntry] = sorted(entries, key=lambda e: e.position)
        self._positions: Dict[int, int] = {e.id: i for i, e in enumerate(self.entries)}
        self._chapters: Dict[int, Chapter] = {c.outline_id: c for c in chapters}

    def __len__(self) -> int:
        return len(self.entries)

    def position_of(self, outline_id: int) -> int:
        if outline_id not in self._positions:
            raise OutlineEntryNotFoundException(outline_id)
        return self._positions[outline_id]

    def entry_at(self, position: int) -> OutlineEntry:
        return self.entries[position]

    def chapter_at(self, position: int) -> Optional[Chapter]:
        return self._chapters.get(self.entries[position].id)

    def is_complete(self, position: int) -> bool:
        return is_complete(self.chapter_at(position))

    def prior_chapters(self, position: int, exclude_outline_id: Optional[int] = None) -> List[Tuple[int, Chapter]]:
        """Persisted chapters strictly before ``position``, in outline order."""
        prior = []
        for i in range(position):
            entry = self.entries[i]
            if entry.id == exclude_outline_id:
                continue
            chapter = self._chapters.get(entry.id)
            if chapter is not None and (chapter.content or chapter.continuity_record is not None):
                prior.append((i, chapter))
        return prior


def resolve_state(
    index: OutlineIndex,
    position: int,
    active_outline_id: Optional[int] = None,
    active_phase: Optional[str] = None,
) -> PositionState:
    entry = index.entry_at(position)
    if active_outline_id is not None and entry.id == active_outline_id:
        return PositionState(active_phase or PositionState.GENERATING.value)
    if index.is_complete(position):
        return PositionState.DONE
    # Only the immediate predecessor decides the lock
    if position == 0 or index.is_complete(position - 1):
        return PositionState.READY
    return PositionState.LOCKED


class SequenceGate:
    """Decides which outline positions may be generated right now.

    State is always read from the database at call time; nothing is cached between requests.
    """

    def __init__(self, db: Session, active_timeout_seconds: int = ACTIVE_GENERATION_TIMEOUT_SECONDS):
        self.db = db
        self.project_repo = ProjectRepository(db)
        self.chapter_repo = ChapterRepository(db)
        self.active_timeout_seconds = active_timeout_seconds

    def build_index(self, project_id: int) -> OutlineIndex:
        return OutlineIndex(
            self.project_repo.list_outline(project_id),
            self.chapter_repo.get_by_project_id(project_id),
        )

    def active_generation(self, project: Project) -> Tuple[Optional[int], Optional[str]]:
        """The (outline_id, phase) currently in flight, ignoring claims that went stale."""
        if project.active_outline_id is None:
            return None, None
        if project.active_started_at is not None and project.active_started_at < self._stale_before():
            logger.warning(
                f"Ignoring stale generation claim on project {project.id} for outline entry {project.active_outline_id}"
            )
            return None, None
        return project.active_outline_id, project.active_phase

    def states(self, project_id: int) -> List[Tuple[OutlineEntry, PositionState]]:
        self.db.expire_all()
        project = self.project_repo.get_by_id(project_id)
        index = self.build_index(project_id)
        active_outline_id, active_phase = self.active_generation(project)
        return [
            (index.entry_at(i), resolve_state(index, i, active_outline_id, active_phase))
            for i in range(len(index))
        ]

    def state_of(self, project_id: int, outline_id: int) -> PositionState:
        self.db.expire_all()
        project = self.project_repo.get_by_id(project_id)
        index = self.build_index(project_id)
        active_outline_id, active_phase = self.active_generation(project)
        return resolve_state(index, index.position_of(outline_id), active_outline_id, active_phase)

    def can_generate(self, project_id: int, outline_id: int) -> bool:
        self.db.expire_all()
        project = self.project_repo.get_by_id(project_id)
        index = self.build_index(project_id)
        active_outline_id, active_phase = self.active_generation(project)
        if active_outline_id is not None:
            return False
        state = resolve_state(index, index.position_of(outline_id))
        return state in (PositionState.READY, PositionState.DONE)

    def ensure_can_start(self, project_id: int, outline_id: int) -> OutlineIndex:
        self.db.expire_all()
        project = self.project_repo.get_by_id(project_id)
        index = self.build_index(project_id)
        position = index.position_of(outline_id)
        active_outline_id, _ = self.active_generation(project)
        if active_outline_id is not None:
            raise GenerationInProgress(project_id, active_outline_id)
        if resolve_state(index, position) == PositionState.LOCKED:
            blocking = index.entry_at(position - 1)
            logger.info(f"Outline entry {outline_id} is locked behind outline entry {blocking.id}")
            raise SequenceViolation(outline_id, blocking.id)
        return index

    def claim(self, project_id: int, outline_id: int, phase: PositionState = PositionState.GENERATING) -> str:
        """Take the project's generation slot; the returned token identifies this claim."""
        claim_token = uuid.uuid4().hex
        if not self.project_repo.claim_generation(
            project_id, outline_id, phase.value, claim_token, self._stale_before()
        ):
            project = self.project_repo.get_by_id(project_id)
            raise GenerationInProgress(project_id, project.active_outline_id)
        logger.info(f"Project {project_id}: outline entry {outline_id} entered {phase.value}")
        return claim_token

    def heartbeat(self, project_id: int, claim_token: str) -> bool:
        return self.project_repo.touch_generation(project_id, claim_token)

    def mark_analyzing(self, project_id: int, claim_token: str) -> bool:
        if not self.project_repo.touch_generation(project_id, claim_token, PositionState.ANALYZING.value):
            return False
        logger.info(f"Project {project_id}: generation {claim_token} entered ANALYZING")
        return True

    def release(self, project_id: int, claim_token: str) -> None:
        if self.project_repo.release_generation(project_id, claim_token):
            logger.info(f"Project {project_id}: released generation slot {claim_token}")

    def _stale_before(self) -> int:
        return int(time.time()) - self.active_timeout_seconds
