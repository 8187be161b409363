from fastapi import Header, HTTPException, status

from .services.ai_service import TextGenerationService


async def get_current_user(x_user_id: str | None = Header(default=None)):
    """Identity is established upstream; the gateway forwards it in the X-User-Id header."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"type": "MISSING_USER", "message": "X-User-Id header is required"},
        )

    return {"user_id": user_id}


def get_text_service() -> TextGenerationService:
    return TextGenerationService()
