import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

ENV = os.getenv("ENV", "local")

# Constants
OPENAI_MODEL = "gpt-4o-mini"
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
XAI_API_KEY = os.getenv("XAI_API_KEY")
PORTKEY_API_KEY = os.getenv("PORTKEY_API_KEY")
PORTKEY_METADATA_USER = os.getenv("PORTKEY_METADATA_USER", "storyline")

# Credits
NEW_USER_CREDITS = int(os.getenv("NEW_USER_CREDITS", 100))

# One of: never, stream_failure, any_failure
REFUND_POLICY = os.getenv("REFUND_POLICY", "never")

# Generation
DEFAULT_CHAPTER_WORD_COUNT = 1500
DEFAULT_CHAPTER_COUNT = 8
DEFAULT_LANGUAGE = "English"
DRAFT_FLUSH_EVERY = int(os.getenv("DRAFT_FLUSH_EVERY", 20))
ACTIVE_GENERATION_TIMEOUT_SECONDS = int(os.getenv("ACTIVE_GENERATION_TIMEOUT_SECONDS", 900))
