class Constants:
    class Metric:
        PREFIX = "storyline"
        INCREMENT_COUNT = 1
        API_LATENCY = "request_latency"
        API_COUNT = "request_count"
        GENERATION_STARTED = "generation.started"
        GENERATION_PERSISTED = "generation.persisted"
        GENERATION_FAILED = "generation.failed"
        EXTRACTION_FAILED = "extraction.failed"
        EXTRACTION_LATENCY = "extraction.latency"
        CREDITS_DEBITED = "credits.debited"
        CREDITS_CREDITED = "credits.credited"
        DRAFT_WRITE_FAILED = "draft.write_failed"

    class Tag:
        PATH = "path"
        METHOD = "method"
        CODE = "code"
        STAGE = "stage"
        KIND = "kind"
        REASON = "reason"
