from enum import Enum


class GenerationKind(str, Enum):
    COMPLETE_SETUP = "complete_setup"
    SINGLE_PAGE_SETUP = "single_page_setup"
    CHAPTER_NORMAL = "chapter_normal"
    CHAPTER_LONG = "chapter_long"


CHAPTER_KINDS = (GenerationKind.CHAPTER_NORMAL, GenerationKind.CHAPTER_LONG)


class PositionState(str, Enum):
    LOCKED = "LOCKED"
    READY = "READY"
    GENERATING = "GENERATING"
    ANALYZING = "ANALYZING"
    DONE = "DONE"


class GenerationPhase(str, Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    CONTEXT_BUILT = "CONTEXT_BUILT"
    STREAMING = "STREAMING"
    ANALYZING = "ANALYZING"
    PERSISTED = "PERSISTED"
    FAILED = "FAILED"


class RefundPolicy(str, Enum):
    NEVER = "never"
    STREAM_FAILURE = "stream_failure"
    ANY_FAILURE = "any_failure"


class CharacterRole(str, Enum):
    PROTAGONIST = "Protagonist"
    ANTAGONIST = "Antagonist"
    SUPPORTING = "Supporting"


class SetupStep(str, Enum):
    CORE = "CORE"
    CHARACTERS = "CHARACTERS"
    OUTLINE = "OUTLINE"
    INSTRUCTIONS = "INSTRUCTIONS"
