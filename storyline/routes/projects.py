from typing import List
from urllib.parse import quote

from fastapi import Depends, Response
from sqlalchemy.orm import Session

from storyline.database import get_db
from storyline.dependencies import get_current_user, get_text_service
from storyline.metrics.router import MetricsRouter
from storyline.models.enums import SetupStep
from storyline.schemas.schemas import (
    Bible,
    CharacterBase,
    CoreConcept,
    FullBibleGenerateRequest,
    OutlineEntryCreate,
    OutlineEntryUpdate,
    ProjectCreate,
    SetupStepResponse,
    WritingInstructions,
)
from storyline.services import project_service
from storyline.services.ai_service import TextGenerationService
from storyline.services.bible_service import BibleService

router = MetricsRouter(tags=["projects"])


@router.post("/projects", response_model=Bible)
def create_project_route(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return project_service.create_project(db, current_user["user_id"], payload)


@router.post("/projects/generate", response_model=Bible)
async def generate_project_route(
    request: FullBibleGenerateRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    text_service: TextGenerationService = Depends(get_text_service),
):
    return await BibleService(db, text_service).generate_full_bible(current_user["user_id"], request)


@router.get("/projects/{project_id}", response_model=Bible)
def get_project_route(project_id: int, db: Session = Depends(get_db)):
    return project_service.get_bible(db, project_id)


@router.get("/projects/{project_id}/export")
def export_manuscript_route(project_id: int, db: Session = Depends(get_db)):
    filename, manuscript = project_service.export_manuscript(db, project_id)
    return Response(
        content=manuscript,
        media_type="text/markdown",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@router.put("/projects/{project_id}/core", response_model=Bible)
def update_core_route(
    project_id: int,
    core: CoreConcept,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return project_service.update_core(db, project_id, core, current_user["user_id"])


@router.put("/projects/{project_id}/instructions", response_model=Bible)
def update_instructions_route(
    project_id: int,
    instructions: WritingInstructions,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return project_service.update_instructions(db, project_id, instructions, current_user["user_id"])


@router.put("/projects/{project_id}/characters", response_model=Bible)
def replace_characters_route(
    project_id: int,
    characters: List[CharacterBase],
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return project_service.replace_characters(db, project_id, characters, current_user["user_id"])


@router.post("/projects/{project_id}/outline", response_model=Bible)
def add_outline_entry_route(project_id: int, entry: OutlineEntryCreate, db: Session = Depends(get_db)):
    return project_service.add_outline_entry(db, project_id, entry)


@router.patch("/projects/{project_id}/outline/{outline_id}", response_model=Bible)
def update_outline_entry_route(
    project_id: int, outline_id: int, update: OutlineEntryUpdate, db: Session = Depends(get_db)
):
    return project_service.update_outline_entry(db, project_id, outline_id, update)


@router.post("/projects/{project_id}/setup/{step}", response_model=SetupStepResponse)
async def generate_setup_step_route(
    project_id: int,
    step: SetupStep,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    text_service: TextGenerationService = Depends(get_text_service),
):
    bible = await BibleService(db, text_service).generate_setup_step(project_id, current_user["user_id"], step)
    return SetupStepResponse(step=step, bible=bible)
