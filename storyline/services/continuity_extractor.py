import logging
from typing import Optional

from pydantic import ValidationError

from ..config import DEFAULT_LANGUAGE
from ..constants.metrics import Constants
from ..metrics.statsd_client import statsd
from ..prompts import format_prompt
from ..prompts.continuity import CONTINUITY_EXTRACTION_PROMPT_V1
from ..schemas.continuity import ContinuityRecordSchema
from ..utils.exceptions import ExtractionError
from .ai_service import ModelConfig, TextGenerationService

logger = logging.getLogger(__name__)

# Ending locations too vague to anchor the next chapter's opening scene
VAGUE_LOCATIONS = {
    "outside",
    "inside",
    "here",
    "there",
    "somewhere",
    "elsewhere",
    "unknown",
    "none",
    "n/a",
    "various",
    "various locations",
}


class ContinuityExtractor:
    """Turns finished chapter prose into a ContinuityRecord with one analysis pass.

    The extractor never sees earlier records. Its output is authoritative for the next
    chapter's briefing, so anything short of a complete, specific record is an error and
    no record is produced.
    """

    def __init__(self, text_service: TextGenerationService, model_config: Optional[ModelConfig] = None):
        self.text_service = text_service
        self.model_config = model_config

    async def extract(self, content: str, title: str, language: str = DEFAULT_LANGUAGE) -> ContinuityRecordSchema:
        if not content or not content.strip():
            raise ExtractionError("Cannot analyze an empty chapter")

        prompt = format_prompt(
            CONTINUITY_EXTRACTION_PROMPT_V1,
            chapter_title=title,
            chapter_content=content,
            language=language,
        )

        try:
            with statsd.timer(Constants.Metric.EXTRACTION_LATENCY):
                raw = await self.text_service.complete_json(prompt, self.model_config)
        except Exception as e:
            logger.error(f"Continuity analysis failed for '{title}': {str(e)}")
            statsd.increment(Constants.Metric.EXTRACTION_FAILED, 1, {Constants.Tag.STAGE: "model"})
            raise ExtractionError(f"Continuity analysis failed: {str(e)}") from e

        try:
            record = ContinuityRecordSchema.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Continuity analysis for '{title}' returned invalid data: {str(e)}")
            statsd.increment(Constants.Metric.EXTRACTION_FAILED, 1, {Constants.Tag.STAGE: "validation"})
            raise ExtractionError(f"Continuity analysis returned invalid data: {str(e)}") from e

        if record.location.strip().lower().rstrip(".") in VAGUE_LOCATIONS:
            statsd.increment(Constants.Metric.EXTRACTION_FAILED, 1, {Constants.Tag.STAGE: "location"})
            raise ExtractionError(f"Ending location '{record.location}' is too vague to continue from")

        logger.info(
            f"Extracted continuity for '{title}': {len(record.key_events)} events, "
            f"{len(record.items)} items, {len(record.characters)} characters"
        )
        return record
