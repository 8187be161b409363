import logging
from typing import Any, Dict

from rq.job import Job

from storyline.database import get_db
from storyline.services.background_jobs import enqueue_job
from storyline.services.chapter_generator import ChapterGenerator

logger = logging.getLogger(__name__)


async def retry_extraction_task(project_id: int, outline_id: int) -> Dict[str, Any]:
    db = next(get_db())
    try:
        record = await ChapterGenerator(db).retry_extraction(project_id, outline_id)
        return record.model_dump()
    finally:
        db.close()


def add_retry_extraction_task_to_bg_jobs(project_id: int, outline_id: int) -> Job:
    logger.info(f"Queueing extraction retry for project {project_id}, outline entry {outline_id}")
    return enqueue_job(retry_extraction_task, project_id=project_id, outline_id=outline_id, priority="high")
