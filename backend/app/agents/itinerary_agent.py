# backend/app/agents/itinerary_agent.py

import json
import logging
import time
from typing import Callable, Dict, List, Optional

import openai
from openai import OpenAI
from pydantic import ValidationError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.core import llm
from app.core.config_loader import settings
from app.core.errors import GenerationError, GenerationErrorKind
from app.core.logger import logger
from app.models.job_models import Day, ItineraryPayload


# rate limits (429) and provider-side 5xx
TRANSIENT_ERRORS = (openai.RateLimitError, openai.InternalServerError)


SYSTEM_PROMPT = (
    "You are a travel planner. Reply with a single JSON object describing the "
    "itinerary. No comments, no markdown, no text outside the JSON."
)


def build_user_prompt(destination: str, duration_days: int) -> str:
    return f"""Plan a {duration_days}-day trip to {destination}.

Return exactly {duration_days} days. Each day needs its own theme (history, food, culture, nature, ...) and exactly 3 activities, one per time slot. Each activity needs:
- time: "Morning", "Afternoon" or "Evening"
- description: short description of the activity
- location: where it happens

Return JSON like this:
{{
  "destination": "{destination}",
  "durationDays": {duration_days},
  "itinerary": [
    {{
      "day": 1,
      "theme": "string",
      "activities": [
        {{ "time": "Morning", "description": "string", "location": "string" }},
        {{ "time": "Afternoon", "description": "string", "location": "string" }},
        {{ "time": "Evening", "description": "string", "location": "string" }}
      ]
    }}
  ]
}}
Repeat the day object for every day, numbering days from 1."""


def build_messages(destination: str, duration_days: int) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(destination, duration_days)},
    ]


# ---------------------------------------------------------------------------
# OUTPUT CONTRACT (no model call involved, testable on its own)
# ---------------------------------------------------------------------------
def parse_itinerary(raw: str, duration_days: Optional[int] = None) -> List[Day]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise GenerationError(
            GenerationErrorKind.MALFORMED_OUTPUT,
            f"LLM returned malformed JSON: {e}",
        ) from e

    if not isinstance(data, dict):
        raise GenerationError(
            GenerationErrorKind.SCHEMA_VIOLATION,
            f"Schema violation: expected a JSON object, got {type(data).__name__}",
        )

    try:
        payload = ItineraryPayload.model_validate(
            data, context={"duration_days": duration_days}
        )
    except ValidationError as e:
        raise GenerationError(
            GenerationErrorKind.SCHEMA_VIOLATION,
            f"Schema violation: {_summarize(e)}",
        ) from e

    return payload.itinerary


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        where = ".".join(str(p) for p in item["loc"]) or "itinerary"
        parts.append(f"{where}: {item['msg']}")
    return "; ".join(parts)


def _describe(error: openai.APIError) -> str:
    # provider messages can echo a masked API key, keep type + status only
    status = getattr(error, "status_code", None)
    return f"{type(error).__name__} (HTTP {status})" if status else type(error).__name__


class ItineraryAgent:
    """
    Generates a validated itinerary for one destination/duration.

    The completion call is retried on transient provider errors only
    (exponential backoff 1s, 2s, 4s ... plus random jitter). Validation
    failures and non-transient provider errors fail immediately.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        max_attempts: Optional[int] = None,
        jitter_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self._client = client
        self.model = model or settings.openai_model
        self.temperature = settings.openai_temperature if temperature is None else temperature
        self.max_attempts = max_attempts or settings.llm_max_attempts
        self.jitter_seconds = settings.retry_jitter_seconds if jitter_seconds is None else jitter_seconds
        self.sleep = sleep

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = llm.build_client()
        return self._client

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, exp_base=2) + wait_random(0, self.jitter_seconds),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    # -----------------------------------------------------------------------
    # MAIN ENTRY
    # -----------------------------------------------------------------------
    def generate(self, destination: str, duration_days: int) -> List[Day]:
        messages = build_messages(destination, duration_days)

        try:
            raw = self._retrying()(
                llm.complete_json, self.client, messages, self.model, self.temperature
            )
        except TRANSIENT_ERRORS as e:
            logger.error(f"LLM unavailable after {self.max_attempts} attempts: {_describe(e)}")
            raise GenerationError(
                GenerationErrorKind.PROVIDER_UNAVAILABLE,
                f"LLM provider unavailable after {self.max_attempts} attempts: {_describe(e)}",
            ) from e
        except openai.APIError as e:
            logger.error(f"LLM request rejected: {_describe(e)}")
            raise GenerationError(
                GenerationErrorKind.PROVIDER_ERROR,
                f"LLM provider error: {_describe(e)}",
            ) from e

        itinerary = parse_itinerary(raw, duration_days)
        logger.info(f"Generated {len(itinerary)}-day itinerary for {destination}")
        return itinerary
