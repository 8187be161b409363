import json
import logging
from typing import List, Optional

from fastapi import Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from storyline.database import get_db
from storyline.dependencies import get_current_user, get_text_service
from storyline.metrics.router import MetricsRouter
from storyline.schemas.schemas import (
    AnalyzeResponse,
    CanGenerateResponse,
    ChapterGenerateRequest,
    ChapterResponse,
    ContextResponse,
    OutlinePositionStatus,
)
from storyline.services import project_service
from storyline.services.ai_service import TextGenerationService
from storyline.services.background_jobs import get_job_status
from storyline.services.background_jobs.tasks import add_retry_extraction_task_to_bg_jobs
from storyline.services.chapter_generator import ChapterGenerator

router = MetricsRouter(tags=["chapters"])
logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/projects/{project_id}/outline/status", response_model=List[OutlinePositionStatus])
def get_outline_status_route(project_id: int, db: Session = Depends(get_db)):
    return project_service.get_outline_status(db, project_id)


@router.get("/projects/{project_id}/chapters", response_model=List[ChapterResponse])
def get_chapters_route(project_id: int, db: Session = Depends(get_db)):
    return project_service.get_chapters(db, project_id)


@router.get("/projects/{project_id}/outline/{outline_id}/chapter", response_model=ChapterResponse)
def get_chapter_route(project_id: int, outline_id: int, db: Session = Depends(get_db)):
    return project_service.get_chapter(db, project_id, outline_id)


@router.get("/projects/{project_id}/outline/{outline_id}/can-generate", response_model=CanGenerateResponse)
def can_generate_route(project_id: int, outline_id: int, db: Session = Depends(get_db)):
    generator = ChapterGenerator(db)
    return CanGenerateResponse(
        outline_id=outline_id,
        can_generate=generator.can_generate(project_id, outline_id),
        state=generator.gate.state_of(project_id, outline_id),
    )


@router.get("/projects/{project_id}/outline/{outline_id}/context", response_model=ContextResponse)
def get_context_route(
    project_id: int,
    outline_id: int,
    rewrite_instructions: Optional[str] = None,
    db: Session = Depends(get_db),
):
    context = ChapterGenerator(db).get_context(project_id, outline_id, rewrite_instructions)
    return ContextResponse(outline_id=outline_id, context=context)


@router.post("/projects/{project_id}/outline/{outline_id}/generate")
async def generate_chapter_route(
    project_id: int,
    outline_id: int,
    request: ChapterGenerateRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    text_service: TextGenerationService = Depends(get_text_service),
):
    generator = ChapterGenerator(db, text_service)
    # Gate, precondition and credit errors surface here as regular HTTP errors
    run = generator.start(
        project_id, outline_id, current_user["user_id"], request.kind, request.rewrite_instructions
    )

    async def event_stream():
        events = generator.stream(run)
        try:
            async for event in events:
                yield f"data: {event.model_dump_json(exclude_none=True)}\n\n"
        except HTTPException as e:
            yield f"data: {json.dumps({'error': e.detail['message'], 'type': e.detail['type']})}\n\n"
        except Exception as e:
            logger.error(f"Generation stream for outline entry {outline_id} crashed: {str(e)}", exc_info=True)
            yield f"data: {json.dumps({'error': str(e), 'type': 'INTERNAL_ERROR'})}\n\n"
        finally:
            await events.aclose()
        yield "data: [DONE]\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/projects/{project_id}/outline/{outline_id}/analyze", response_model=AnalyzeResponse)
async def analyze_chapter_route(
    project_id: int,
    outline_id: int,
    background: bool = False,
    db: Session = Depends(get_db),
    text_service: TextGenerationService = Depends(get_text_service),
):
    if background:
        project_service.get_chapter(db, project_id, outline_id)
        job = add_retry_extraction_task_to_bg_jobs(project_id, outline_id)
        return AnalyzeResponse(outline_id=outline_id, job_id=job.id)

    record = await ChapterGenerator(db, text_service).retry_extraction(project_id, outline_id)
    return AnalyzeResponse(outline_id=outline_id, continuity_record=record)


@router.get("/jobs/{job_id}")
def get_job_status_route(job_id: str):
    status = get_job_status(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail={"type": "JOB_NOT_FOUND", "message": f"Job {job_id} not found"})
    return status
