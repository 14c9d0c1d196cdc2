# backend/app/core/llm.py

from typing import Dict, List, Optional

from openai import OpenAI

from app.core.config_loader import settings


def build_client(api_key: Optional[str] = None) -> OpenAI:
    # retries are owned by the itinerary agent, the SDK must not add its own
    return OpenAI(api_key=api_key or settings.OPENAI_API_KEY, max_retries=0)


# ---------------------------------------------------------------------------
# STRUCTURED-JSON COMPLETION
# ---------------------------------------------------------------------------
def complete_json(
    client: OpenAI,
    messages: List[Dict[str, str]],
    model: str,
    temperature: float,
) -> str:
    """
    Single chat completion in JSON-object mode.

    Returns the raw text of the first choice ("" when the provider sent
    nothing). Provider errors (openai.APIError subclasses) propagate.
    """
    completion = client.chat.completions.create(
        model=model,
        temperature=temperature,
        messages=messages,
        response_format={"type": "json_object"},
    )
    if not completion.choices:
        return ""
    return completion.choices[0].message.content or ""
