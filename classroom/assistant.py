"""Client for the external text-to-structured-data service.

Free text typed by users (booking requests, room searches, maintenance
reports) is sent to a ``generateContent``-style LLM API and the first JSON
object in the reply is validated into one of our schemas. Nothing returned
here is trusted: drafts still go through the normal booking checks.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import httpx
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from pydantic import BaseModel, ValidationError

from .cache import ResolvedValueCache
from .config import Settings
from .models import DayOfWeek
from .schemas import BookingDraft, MaintenanceAnalysis, SearchIntent

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

MODEL_CACHE_KEY = "generate-model"
ROOM_TYPES = ["Lecture Hall", "Laboratory", "Computer Lab", "Seminar Room", "Auditorium", "Conference Room"]

BOOKING_PROMPT = """
Context: Today is {today}.
User Query: "{query}"
Task: Extract schedule details.
Rules:
1. 'day': a weekday name such as "Monday"; convert relative days (tomorrow) using today.
2. 'startTime'/'endTime': 12-hour clock strings like "9:00 AM".
OUTPUT RAW JSON ONLY:
{{ "subject": "string"|null, "roomName": "string"|null, "day": "string"|null, "startTime": "string"|null, "endTime": "string"|null, "professor": "string"|null }}
"""

SEARCH_PROMPT = """
Context: Today is {today}.
User Query: "{query}"
Task: Extract search requirements.
Ref Data: Types: {room_types}
Rules:
1. 'day': Convert relative (tomorrow) to strict Day string.
2. 'filterType': Fuzzy match to Types. If "room"/"any"/"empty", return "All".
3. 'searchKeyword': Specific names (e.g. "CL5").
4. 'startTime'/'endTime': 12-hour clock strings. "12pm" = start "12:00 PM", end "1:00 PM".
5. 'targetStatus': "Available" (default), "Maintenance".
OUTPUT RAW JSON ONLY:
{{ "day": "Monday"|null, "filterType": "string"|null, "searchKeyword": "string"|null, "startTime": "string"|null, "endTime": "string"|null, "minCapacity": number|null, "equipment": ["string"]|null, "targetStatus": "Available"|null }}
"""

MAINTENANCE_PROMPT = """
User Report: "{query}"
Task: Analyze issue.
Rules:
1. Category: Electrical, Plumbing, HVAC, Equipment, Cleaning, Other.
2. Urgency: Low, Medium, High, Critical.
OUTPUT RAW JSON ONLY:
{{ "category": "Equipment", "urgency": "Medium", "summary": "string", "suggestedAction": "string" }}
"""


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Return the outermost ``{...}`` object in ``text``, ignoring code fences."""
    clean = text.replace("```json", "").replace("```", "").strip()
    first_open = clean.find("{")
    last_close = clean.rfind("}")
    if first_open == -1 or last_close < first_open:
        return None
    try:
        parsed = json.loads(clean[first_open : last_close + 1])
    except json.JSONDecodeError:
        logger.warning("Assistant reply is not valid JSON: %.200s", text)
        return None
    return parsed if isinstance(parsed, dict) else None


class AssistantClient:
    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.Client] = None,
        model_cache: Optional[ResolvedValueCache[str]] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings
        self._http = http_client or httpx.Client(timeout=settings.assistant_timeout)
        self._model_cache = model_cache or ResolvedValueCache[str](ttl=settings.assistant_model_ttl)
        self._today = today
        self._breaker = CircuitBreaker(
            failure_threshold=settings.assistant_failure_threshold,
            recovery_timeout=settings.assistant_recovery_timeout,
            expected_exception=httpx.HTTPError,
            name="assistant",
        )

    @property
    def configured(self) -> bool:
        return bool(self._settings.assistant_api_key)

    def close(self) -> None:
        self._http.close()

    def _url(self, path: str) -> str:
        return f"{self._settings.assistant_base_url.rstrip('/')}/{path.lstrip('/')}"

    def _lookup_model(self) -> Optional[str]:
        try:
            response = self._http.get(self._url("models"), params={"key": self._settings.assistant_api_key})
            response.raise_for_status()
            models = response.json().get("models") or []
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("Could not list assistant models: %s", exc)
            return None

        usable = [
            model["name"].replace("models/", "", 1)
            for model in models
            if isinstance(model, dict)
            and "name" in model
            and "generateContent" in (model.get("supportedGenerationMethods") or [])
        ]
        for preferred in self._settings.assistant_preferred_models:
            for name in usable:
                if preferred in name:
                    return name
        return usable[0] if usable else None

    def resolve_model(self, force_refresh: bool = False) -> str:
        """Model name to call, re-resolved once the cache TTL has passed."""
        model = self._model_cache.get_or_load(MODEL_CACHE_KEY, self._lookup_model, force_refresh=force_refresh)
        return model or self._settings.assistant_fallback_model

    def _post_generate(self, prompt: str) -> Dict[str, Any]:
        response = self._http.post(
            self._url(f"models/{self.resolve_model()}:generateContent"),
            params={"key": self._settings.assistant_api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        return response.json()

    def generate(self, prompt: str) -> Optional[Dict[str, Any]]:
        """Send ``prompt`` and return the JSON object found in the first candidate."""
        if not self.configured:
            logger.info("Assistant API key not configured; skipping call")
            return None
        try:
            payload = self._breaker.call(self._post_generate, prompt)
        except CircuitBreakerError:
            logger.warning("Assistant circuit is open; skipping call")
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Assistant request failed: %s", exc)
            return None

        if not isinstance(payload, dict):
            logger.warning("Assistant reply is not an object")
            return None
        error = payload.get("error")
        if error:
            logger.error("Assistant API error: %s", error.get("message", error) if isinstance(error, dict) else error)
            return None
        try:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Assistant reply has no candidates")
            return None
        return extract_json(text)

    def _ask(self, prompt: str, schema: Type[ModelT]) -> Optional[ModelT]:
        data = self.generate(prompt)
        if data is None:
            return None
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            logger.warning("Assistant reply does not fit %s: %s", schema.__name__, exc)
            return None

    def _today_name(self) -> str:
        return DayOfWeek.from_date(self._today()).value

    def parse_booking_intent(self, query: str) -> Optional[BookingDraft]:
        return self._ask(BOOKING_PROMPT.format(today=self._today_name(), query=query), BookingDraft)

    def parse_search_intent(self, query: str) -> Optional[SearchIntent]:
        prompt = SEARCH_PROMPT.format(today=self._today_name(), query=query, room_types=ROOM_TYPES)
        return self._ask(prompt, SearchIntent)

    def analyze_maintenance_issue(self, description: str) -> Optional[MaintenanceAnalysis]:
        return self._ask(MAINTENANCE_PROMPT.format(query=description), MaintenanceAnalysis)
