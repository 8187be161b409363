"""Tests for outline position states and the per-project generation slot."""

import pytest

from storyline.models.enums import PositionState
from storyline.repository.chapter_repository import ChapterRepository
from storyline.repository.project_repository import ProjectRepository
from storyline.services.sequence_gate import SequenceGate
from storyline.utils.exceptions import GenerationInProgress, SequenceViolation

from conftest import make_record


def states(db, project_id):
    return [state for _, state in SequenceGate(db).states(project_id)]


def expire_claim(db, project_id):
    stored = ProjectRepository(db).get_by_id(project_id)
    stored.active_started_at = 1
    db.commit()


class TestPositionStates:
    def test_fresh_outline(self, db, make_project):
        project, _ = make_project()
        assert states(db, project.id) == [PositionState.READY, PositionState.LOCKED, PositionState.LOCKED]

    def test_unlocks_one_position_at_a_time(self, db, make_project, write_chapter):
        project, (a, b, c) = make_project()

        write_chapter(project.id, a, record=make_record())
        assert states(db, project.id) == [PositionState.DONE, PositionState.READY, PositionState.LOCKED]

        write_chapter(project.id, b, record=make_record())
        assert states(db, project.id) == [PositionState.DONE, PositionState.DONE, PositionState.READY]

    def test_chapter_without_record_is_not_done(self, db, make_project, write_chapter):
        project, (a, b, c) = make_project()
        write_chapter(project.id, a, content="Prose but no record.")

        assert states(db, project.id) == [PositionState.READY, PositionState.LOCKED, PositionState.LOCKED]

    def test_only_immediate_predecessor_decides(self, db, make_project, write_chapter):
        project, (a, b, c) = make_project()
        write_chapter(project.id, b, record=make_record())

        # B has a record of its own, and C sits directly behind it
        assert states(db, project.id) == [PositionState.READY, PositionState.DONE, PositionState.READY]

    def test_order_follows_position_not_title(self, db, make_project, write_chapter):
        project, entries = make_project(titles=("Chapter 10", "Chapter 2", "Chapter 1"))
        write_chapter(project.id, entries[0], record=make_record())

        gate = SequenceGate(db)
        assert gate.state_of(project.id, entries[1].id) == PositionState.READY
        assert gate.state_of(project.id, entries[2].id) == PositionState.LOCKED

    def test_removing_a_record_relocks_the_next_position(self, db, make_project, write_chapter):
        project, (a, b, c) = make_project()
        chapter_a = write_chapter(project.id, a, record=make_record())
        assert states(db, project.id)[1] == PositionState.READY

        ChapterRepository(db).promote_draft(chapter_a, "Rewritten prose.")

        assert states(db, project.id) == [PositionState.READY, PositionState.LOCKED, PositionState.LOCKED]


class TestGenerationSlot:
    def test_locked_position_names_its_blocker(self, db, make_project):
        project, (a, b, c) = make_project()

        with pytest.raises(SequenceViolation) as exc_info:
            SequenceGate(db).ensure_can_start(project.id, c.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.blocking_outline_id == b.id

    def test_in_flight_position_reports_phase(self, db, make_project):
        project, (a, b, c) = make_project()
        gate = SequenceGate(db)

        claim_token = gate.claim(project.id, a.id)
        assert gate.state_of(project.id, a.id) == PositionState.GENERATING

        assert gate.mark_analyzing(project.id, claim_token) is True
        assert gate.state_of(project.id, a.id) == PositionState.ANALYZING

        gate.release(project.id, claim_token)
        assert gate.state_of(project.id, a.id) == PositionState.READY

    def test_one_active_generation_per_project(self, db, make_project, write_chapter):
        project, (a, b, c) = make_project()
        write_chapter(project.id, a, record=make_record())
        gate = SequenceGate(db)

        gate.claim(project.id, a.id)

        assert gate.can_generate(project.id, b.id) is False
        with pytest.raises(GenerationInProgress) as exc_info:
            gate.ensure_can_start(project.id, b.id)
        assert exc_info.value.active_outline_id == a.id
        with pytest.raises(GenerationInProgress):
            gate.claim(project.id, b.id)

    def test_release_only_frees_own_claim(self, db, make_project):
        project, (a, b, c) = make_project()
        gate = SequenceGate(db)
        gate.claim(project.id, a.id)

        gate.release(project.id, "someone-elses-token")

        assert gate.can_generate(project.id, a.id) is False

    def test_stale_claim_can_be_taken_over(self, db, make_project):
        project, (a, b, c) = make_project()
        gate = SequenceGate(db, active_timeout_seconds=60)
        gate.claim(project.id, a.id)
        expire_claim(db, project.id)

        assert gate.can_generate(project.id, a.id) is True
        gate.claim(project.id, a.id)
        assert ProjectRepository(db).get_by_id(project.id).active_started_at > 1

    def test_overtaken_claim_cannot_touch_the_new_one(self, db, make_project):
        project, (a, b, c) = make_project()
        gate = SequenceGate(db, active_timeout_seconds=60)
        first = gate.claim(project.id, a.id)
        expire_claim(db, project.id)
        second = gate.claim(project.id, a.id)

        assert gate.heartbeat(project.id, first) is False
        assert gate.mark_analyzing(project.id, first) is False
        gate.release(project.id, first)

        assert gate.state_of(project.id, a.id) == PositionState.GENERATING
        assert gate.can_generate(project.id, b.id) is False
        gate.release(project.id, second)
        assert gate.state_of(project.id, a.id) == PositionState.READY

    def test_heartbeat_keeps_a_long_claim_fresh(self, db, make_project):
        project, (a, b, c) = make_project()
        gate = SequenceGate(db, active_timeout_seconds=60)
        claim_token = gate.claim(project.id, a.id)
        expire_claim(db, project.id)

        assert gate.heartbeat(project.id, claim_token) is True

        assert gate.can_generate(project.id, a.id) is False
        with pytest.raises(GenerationInProgress):
            gate.claim(project.id, a.id)

    def test_done_position_can_be_regenerated(self, db, make_project, write_chapter):
        project, (a, b, c) = make_project()
        write_chapter(project.id, a, record=make_record())

        gate = SequenceGate(db)
        assert gate.can_generate(project.id, a.id) is True
        gate.ensure_can_start(project.id, a.id)
