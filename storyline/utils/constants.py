from enum import Enum


class SettingKeys(Enum):
    CHAPTER_GENERATION_MODEL = "chapter_generation_model"
    CHAPTER_GENERATION_TEMPERATURE = "chapter_generation_temperature"

    CONTINUITY_EXTRACTION_MODEL = "continuity_extraction_model"
    CONTINUITY_EXTRACTION_TEMPERATURE = "continuity_extraction_temperature"

    BIBLE_GENERATION_MODEL = "bible_generation_model"
    BIBLE_GENERATION_TEMPERATURE = "bible_generation_temperature"
