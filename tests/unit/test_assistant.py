"""Unit tests for the assistant client, using a mocked HTTP transport."""
import json
from datetime import date

import httpx

from classroom.assistant import AssistantClient, extract_json
from classroom.cache import ResolvedValueCache
from classroom.config import Settings
from classroom.models import RoomStatusEnum

MODELS = {
    "models": [
        {"name": "models/gemini-pro", "supportedGenerationMethods": ["generateContent"]},
        {"name": "models/embedding-001", "supportedGenerationMethods": ["embedContent"]},
        {"name": "models/gemini-1.5-flash-latest", "supportedGenerationMethods": ["generateContent"]},
    ]
}


def reply(payload):
    text = "```json\n" + json.dumps(payload) + "\n```"
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeAPI:
    """Records requests and answers like a generateContent service."""

    def __init__(self, generate_body=None, generate_status=200, models_status=200):
        self.generate_body = generate_body or reply({})
        self.generate_status = generate_status
        self.models_status = models_status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            return httpx.Response(self.models_status, json=MODELS)
        return httpx.Response(self.generate_status, json=self.generate_body)

    @property
    def generate_calls(self):
        return [request for request in self.requests if request.method == "POST"]

    @property
    def model_calls(self):
        return [request for request in self.requests if request.method == "GET"]


def make_client(api, api_key="test-key", **overrides):
    settings = Settings(assistant_api_key=api_key, assistant_failure_threshold=2, **overrides)
    return AssistantClient(
        settings,
        http_client=httpx.Client(transport=httpx.MockTransport(api)),
        model_cache=ResolvedValueCache[str](ttl=settings.assistant_model_ttl),
        today=lambda: date(2026, 10, 19),
    )


class TestExtractJson:
    def test_strips_code_fences_and_chatter(self):
        text = 'Sure! ```json\n{"day": "Monday", "nested": {"a": 1}}\n``` Hope it helps.'

        assert extract_json(text) == {"day": "Monday", "nested": {"a": 1}}

    def test_returns_none_without_object(self):
        assert extract_json("no json here") is None
        assert extract_json("{not: valid}") is None
        assert extract_json("} backwards {") is None


class TestModelResolution:
    """Test model lookup and its cache."""

    def test_prefers_configured_models_and_strips_prefix(self):
        api = FakeAPI()
        client = make_client(api)

        assert client.resolve_model() == "gemini-1.5-flash-latest"
        assert client.resolve_model() == "gemini-1.5-flash-latest"
        assert len(api.model_calls) == 1

    def test_force_refresh_looks_up_again(self):
        api = FakeAPI()
        client = make_client(api)
        client.resolve_model()

        client.resolve_model(force_refresh=True)

        assert len(api.model_calls) == 2

    def test_failed_lookup_uses_fallback_model(self):
        api = FakeAPI(models_status=500)
        client = make_client(api)

        assert client.resolve_model() == "gemini-pro"


class TestGenerate:
    """Test the generateContent round trip and its failure paths."""

    def test_parse_booking_intent(self):
        api = FakeAPI(
            reply({"subject": "CS101", "roomName": "CL5", "day": "Tuesday", "startTime": "9:00 AM", "endTime": "10:00 AM"})
        )
        client = make_client(api)

        draft = client.parse_booking_intent("Book CL5 tomorrow 9 to 10 for CS101")

        assert draft.room_name == "CL5"
        assert draft.day == "Tuesday"
        request = api.generate_calls[0]
        assert request.url.path.endswith("/models/gemini-1.5-flash-latest:generateContent")
        assert request.url.params["key"] == "test-key"
        assert "Today is Monday" in request.content.decode()

    def test_parse_search_intent(self):
        api = FakeAPI(reply({"filterType": "Computer Lab", "equipment": None, "targetStatus": "Available"}))
        client = make_client(api)

        intent = client.parse_search_intent("free computer lab")

        assert intent.room_type == "Computer Lab"
        assert intent.target_status == RoomStatusEnum.AVAILABLE

    def test_analyze_maintenance_issue(self):
        api = FakeAPI(reply({"category": "Plumbing", "urgency": "High", "summary": "Leak", "suggestedAction": "Shut valve"}))
        client = make_client(api)

        analysis = client.analyze_maintenance_issue("Water dripping from the ceiling")

        assert analysis.category == "Plumbing"
        assert analysis.suggested_action == "Shut valve"

    def test_unconfigured_client_makes_no_requests(self):
        api = FakeAPI()
        client = make_client(api, api_key="")

        assert client.configured is False
        assert client.generate("anything") is None
        assert api.requests == []

    def test_api_error_payload_returns_none(self):
        api = FakeAPI({"error": {"message": "quota exceeded"}})

        assert make_client(api).generate("anything") is None

    def test_reply_without_candidates_returns_none(self):
        api = FakeAPI({"candidates": []})

        assert make_client(api).generate("anything") is None

    def test_circuit_opens_after_repeated_failures(self):
        """Test calls stop reaching the service once the threshold is hit."""
        api = FakeAPI(generate_status=500)
        client = make_client(api)

        results = [client.generate("anything") for _ in range(4)]

        assert results == [None, None, None, None]
        assert len(api.generate_calls) == 2
