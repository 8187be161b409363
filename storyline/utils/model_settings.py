import logging
from typing import Tuple

from sqlalchemy.orm import Session

from ..config import OPENAI_MODEL
from ..services.setting_service import get_setting_by_key
from .constants import SettingKeys

logger = logging.getLogger(__name__)


class ModelSettings:
    def __init__(self, db: Session):
        self.db = db

    def get_model_and_temperature(
        self,
        setting_key_pair: Tuple[str, str],
        default_model: str = OPENAI_MODEL,
        default_temperature: float = 0.5,
    ) -> Tuple[str, float]:
        model_key, temp_key = setting_key_pair

        try:
            model = get_setting_by_key(self.db, model_key).value
        except Exception as e:
            logger.warning(f"Could not get model setting {model_key}, using default: {str(e)}")
            model = default_model

        try:
            temp_value = get_setting_by_key(self.db, temp_key).value
            temperature = float(temp_value)
        except Exception as e:
            logger.warning(f"Could not get temperature setting {temp_key}, using default: {str(e)}")
            temperature = default_temperature

        return model, temperature

    def chapter_generation(self) -> Tuple[str, float]:
        return self.get_model_and_temperature(
            (
                SettingKeys.CHAPTER_GENERATION_MODEL.value,
                SettingKeys.CHAPTER_GENERATION_TEMPERATURE.value,
            ),
            default_temperature=0.8,
        )

    def continuity_extraction(self) -> Tuple[str, float]:
        return self.get_model_and_temperature(
            (
                SettingKeys.CONTINUITY_EXTRACTION_MODEL.value,
                SettingKeys.CONTINUITY_EXTRACTION_TEMPERATURE.value,
            ),
            default_temperature=0.2,
        )

    def bible_generation(self) -> Tuple[str, float]:
        return self.get_model_and_temperature(
            (
                SettingKeys.BIBLE_GENERATION_MODEL.value,
                SettingKeys.BIBLE_GENERATION_TEMPERATURE.value,
            ),
            default_temperature=0.9,
        )
