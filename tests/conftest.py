"""Shared fixtures: an in-memory database per test and a scripted text-generation service."""

import asyncio
import os

# Must be set before storyline.database is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from storyline.database import Base  # noqa: E402
from storyline.models import models  # noqa: E402,F401
from storyline.repository.chapter_repository import ChapterRepository  # noqa: E402
from storyline.repository.project_repository import ProjectRepository  # noqa: E402
from storyline.schemas.continuity import ContinuityRecordSchema  # noqa: E402
from storyline.schemas.schemas import CoreConcept, OutlineEntryCreate  # noqa: E402

USER_ID = "author-1"


def make_record(location="the harbor office", items=None, summary="Things happened.", key_events=None, characters=None):
    return {
        "summary": summary,
        "key_events": key_events if key_events is not None else ["An event"],
        "items": items if items is not None else [],
        "location": location,
        "characters": characters if characters is not None else ["Mara"],
    }


class FakeTextService:
    """Scripted stand-in for TextGenerationService.

    ``fragments`` are streamed in order; with ``fail_after=n`` the stream raises after n
    fragments. ``json_responses`` are returned (or raised, for exceptions) one per call.
    """

    def __init__(self, fragments=None, json_responses=None, fail_after=None):
        self.fragments = list(fragments if fragments is not None else ["Once upon ", "a time."])
        self.json_responses = list(json_responses or [])
        self.fail_after = fail_after
        self.prompts = []
        self.json_prompts = []

    async def stream_completion(self, prompt, model_config=None):
        self.prompts.append(prompt)
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i >= self.fail_after:
                raise ConnectionError("upstream closed the stream")
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise ConnectionError("upstream closed the stream")

    async def complete_json(self, prompt, model_config=None):
        self.json_prompts.append(prompt)
        if not self.json_responses:
            raise RuntimeError("no scripted response left")
        response = self.json_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def drain(events):
    """Consume an async event stream; returns (events, raised exception or None)."""
    collected = []

    async def _drain():
        try:
            async for event in events:
                collected.append(event)
        except Exception as e:
            return e
        return None

    error = asyncio.run(_drain())
    return collected, error


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_project(db):
    """Create a project whose core is ready, with one outline entry per title."""

    def _make_project(titles=("A", "B", "C"), **core_fields):
        core = CoreConcept(
            title=core_fields.pop("title", "The Lantern Keeper"),
            theme=core_fields.pop("theme", "Trust"),
            genre=core_fields.pop("genre", "Mystery"),
            **core_fields,
        )
        outline = [OutlineEntryCreate(title=title, summary=f"Summary of {title}") for title in titles]
        project = ProjectRepository(db).create(core, USER_ID, outline=outline)
        return project, ProjectRepository(db).list_outline(project.id)

    return _make_project


@pytest.fixture
def write_chapter(db):
    """Persist a chapter directly, optionally with a continuity record."""

    def _write_chapter(project_id, entry, content="Some prose.", record=None):
        repo = ChapterRepository(db)
        chapter_id = repo.save_chapter(project_id, entry.id, entry.title, content, user_id=USER_ID)
        if record is not None:
            repo.save_continuity_record(chapter_id, ContinuityRecordSchema.model_validate(record))
        return chapter_id

    return _write_chapter
