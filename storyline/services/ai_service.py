import json
import logging
import re
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from openai import AsyncOpenAI
from portkey_ai import PORTKEY_GATEWAY_URL, createHeaders

from ..config import ENV, OPENAI_API_KEY, OPENAI_MODEL, PORTKEY_API_KEY, PORTKEY_METADATA_USER, XAI_API_KEY

logger = logging.getLogger(__name__)

# (model, temperature)
ModelConfig = Tuple[str, float]

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?")


def get_headers(model: str | None = None) -> Dict[str, str]:
    # Check if it's a Grok model
    virtual_key = OPENAI_API_KEY
    if model and model.startswith("grok"):
        virtual_key = XAI_API_KEY

    headers = createHeaders(
        api_key=PORTKEY_API_KEY,
        virtual_key=virtual_key,
        metadata={"env": ENV, "user_id": PORTKEY_METADATA_USER},
    )
    return headers


def get_openai_client(model: str | None = None) -> AsyncOpenAI:
    headers = get_headers(model)

    return AsyncOpenAI(base_url=PORTKEY_GATEWAY_URL, default_headers=headers)


def parse_json_response(text: Optional[str]) -> Any:
    """Parse a model's JSON answer, tolerating markdown code fences around it."""
    if text is None:
        raise ValueError("Model returned no content")
    clean_text = CODE_FENCE_PATTERN.sub("", text).strip()
    try:
        return json.loads(clean_text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Model returned malformed JSON: {e}") from e


class TextGenerationService:
    """Boundary to the external text-generation service.

    Both calls are unreliable network operations; callers decide how failures map onto
    their own error types.
    """

    def __init__(self, default_model: str = OPENAI_MODEL):
        self.default_model = default_model

    async def stream_completion(self, prompt: str, model_config: Optional[ModelConfig] = None) -> AsyncIterator[str]:
        model, temperature = model_config or (self.default_model, 0.8)
        client = get_openai_client(model)
        logger.info(f"Streaming completion using model: {model}")
        stream = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            stream=True,
        )
        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content

    async def complete_json(self, prompt: str, model_config: Optional[ModelConfig] = None) -> Dict[str, Any]:
        model, temperature = model_config or (self.default_model, 0.2)
        client = get_openai_client(model)
        logger.info(f"Requesting JSON completion using model: {model}")
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        result = parse_json_response(response.choices[0].message.content)
        if not isinstance(result, dict):
            raise ValueError("Model response must be a JSON object")
        return result
