"""
Builds the "story so far" briefing injected into a chapter generation request.

The briefing lists every persisted chapter before the target position (continuity record
preferred, raw excerpt as fallback). The current world state is pinned to the record of the
chapter immediately before the target and is left out when that chapter is missing,
unanalyzed or in flight. Rewrite instructions come last.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..schemas.continuity import ContinuityRecordSchema
from .sequence_gate import SequenceGate

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 300

OPENING_CHAPTER_INSTRUCTION = (
    "This is the FIRST chapter. Establish the world and characters effectively. "
    "Start the plot immediately."
)


@dataclass(frozen=True)
class PriorChapter:
    position: int
    title: str
    content: str
    record: Optional[ContinuityRecordSchema] = None


def _format_chapter(chapter: PriorChapter) -> str:
    lines = [f"[Chapter {chapter.position + 1}: {chapter.title}]"]
    record = chapter.record
    if record is not None:
        lines.append(f"Summary: {record.summary}")
        lines.append(f"Key Events: {', '.join(record.key_events)}")
        lines.append(f"Items Involved: {', '.join(record.items)}")
        lines.append(f"Ending Location: {record.location}")
    else:
        lines.append(f"Content Excerpt: {chapter.content[:EXCERPT_LENGTH]}...")
    return "\n".join(lines)


def _format_world_state(record: ContinuityRecordSchema) -> str:
    inventory = ", ".join(record.items) or "None"
    return "\n".join(
        [
            "## CURRENT WORLD STATE (MUST FOLLOW FOR CONTINUITY):",
            f"- STARTING LOCATION: {record.location}",
            "  The scene MUST start at this exact location.",
            f"- INVENTORY/STATUS: {inventory}",
            "- IMMEDIATE CONTEXT: Continue directly from the events of the previous chapter.",
        ]
    )


def _format_rewrite_block(rewrite_instructions: str) -> str:
    return "\n".join(
        [
            "## REWRITE INSTRUCTIONS (USER FEEDBACK):",
            "The user has explicitly requested a rewrite with the following instructions:",
            "<<<REWRITE_INSTRUCTIONS",
            rewrite_instructions.strip(),
            "REWRITE_INSTRUCTIONS>>>",
            "These instructions take priority. Incorporate them while maintaining story "
            "continuity and high literary quality.",
        ]
    )


def predecessor_record(
    prior_chapters: Sequence[PriorChapter], position: Optional[int] = None
) -> Optional[ContinuityRecordSchema]:
    """Record of the chapter at ``position - 1``, or None when that chapter is absent or unanalyzed."""
    if not prior_chapters:
        return None
    last = max(prior_chapters, key=lambda c: c.position)
    if position is not None and last.position != position - 1:
        return None
    return last.record


def assemble_context(
    prior_chapters: Sequence[PriorChapter],
    rewrite_instructions: Optional[str] = None,
    position: Optional[int] = None,
) -> str:
    """Deterministic briefing for the chapter at ``position``.

    Without ``position`` the target is taken to follow the last of ``prior_chapters``.
    """
    ordered = sorted(prior_chapters, key=lambda c: c.position)
    blocks: List[str] = []

    if not ordered:
        blocks.append(OPENING_CHAPTER_INSTRUCTION)
    else:
        synopsis = "## PREVIOUS STORY SYNOPSIS (The story so far):"
        blocks.append(synopsis + "\n\n" + "\n\n".join(_format_chapter(c) for c in ordered))

        record = predecessor_record(ordered, position)
        if record is not None:
            blocks.append(_format_world_state(record))

    if rewrite_instructions and rewrite_instructions.strip():
        blocks.append(_format_rewrite_block(rewrite_instructions))

    return "\n\n".join(blocks)


class ContextAssembler:
    def __init__(self, db: Session, gate: Optional[SequenceGate] = None):
        self.db = db
        self.gate = gate or SequenceGate(db)

    def prior_chapters(self, project_id: int, outline_id: int) -> Tuple[int, List[PriorChapter]]:
        """Target position and the persisted chapters before it, minus any in-flight one."""
        project = self.gate.project_repo.get_by_id(project_id)
        index = self.gate.build_index(project_id)
        position = index.position_of(outline_id)
        active_outline_id, _ = self.gate.active_generation(project)
        prior = []
        for i, chapter in index.prior_chapters(position, exclude_outline_id=active_outline_id):
            record = chapter.continuity_record
            prior.append(
                PriorChapter(
                    position=i,
                    title=chapter.title or index.entry_at(i).title,
                    content=chapter.content or "",
                    record=ContinuityRecordSchema.model_validate(record) if record is not None else None,
                )
            )
        return position, prior

    def get_context(
        self, project_id: int, outline_id: int, rewrite_instructions: Optional[str] = None
    ) -> str:
        self.db.expire_all()
        position, prior = self.prior_chapters(project_id, outline_id)
        logger.info(
            f"Assembling context for outline entry {outline_id} from {len(prior)} prior chapters"
        )
        return assemble_context(prior, rewrite_instructions, position)
