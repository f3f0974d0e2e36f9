import json

import httpx
from fastapi.testclient import TestClient

from board_items.core.config import Settings, get_settings
from board_items.core.exceptions import ConfigurationError, UpstreamBusinessError, UpstreamUnavailableError
from board_items.main import app, get_service
from board_items.models import BoardSchema, BoardSummary, EnvDebugResponse, ItemsMeta, ItemsResponse
from board_items.services import (
    ItemsService,
    MondayClient,
    PaginationEngine,
    ResilientPageFetcher,
    RetryPolicy,
    RowDeriver,
)


def make_response(cursor="CUR2"):
    return ItemsResponse(
        items=[{"id": "101", "name": "Lakeside", "total_cost": 41750.5, "housing_occupancy": None}],
        cursor=cursor,
        count=1,
        meta=ItemsMeta(pages_fetched=2, attempts=3, elapsed_ms=812.4, stop_reason="min_rows"),
    )


class FakeService:
    def __init__(self):
        self.schema = BoardSchema()
        self.calls = []

    async def get_items(self, **kwargs):
        self.calls.append(kwargs)
        return make_response()

    def env_report(self):
        return EnvDebugResponse(
            has_token=True,
            approx_length=40,
            token_starts_with="eyJ",
            board_id="2761790925",
            api_version="2024-10",
        )

    async def visible_boards(self):
        return [BoardSummary(id="2761790925", name="Colleges", kind="public", state="active")]


class FailingService(FakeService):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    async def get_items(self, **kwargs):
        raise self.exc


fake_service = FakeService()
app.dependency_overrides[get_service] = lambda: fake_service
client = TestClient(app)


def _with_service(service):
    app.dependency_overrides[get_service] = lambda: service


def teardown_function():
    app.dependency_overrides[get_service] = lambda: fake_service
    app.dependency_overrides.pop(get_settings, None)
    fake_service.calls.clear()


def test_items_happy_path():
    response = client.get("/api/items")

    assert response.status_code == 200
    payload = response.json()
    assert payload["count"] == 1
    assert payload["cursor"] == "CUR2"
    assert payload["items"][0]["total_cost"] == 41750.5
    assert payload["items"][0]["housing_occupancy"] is None
    assert payload["meta"]["pagesFetched"] == 2
    assert payload["meta"]["stopReason"] == "min_rows"
    assert "X-Request-ID" in response.headers


def test_items_defaults_are_forwarded():
    client.get("/api/items")
    call = fake_service.calls[0]
    assert call["cursor"] is None
    assert call["page_size"] == 100
    assert call["min_rows"] == 20
    assert call["max_pages"] == 5
    assert call["progressive"] is False
    assert call["row_filter"].is_empty


def test_items_query_parameters_are_forwarded():
    client.get(
        "/api/items",
        params={
            "cursor": "CUR1",
            "pageSize": 50,
            "minFirst": 10,
            "maxPages": 3,
            "progressive": "1",
            "q": "lake",
            "eq": ["state:OR"],
            "range": ["total_cost::30000"],
        },
    )
    call = fake_service.calls[0]
    assert call["cursor"] == "CUR1"
    assert call["page_size"] == 50
    assert call["min_rows"] == 10
    assert call["max_pages"] == 3
    assert call["progressive"] is True
    assert call["row_filter"].text == "lake"
    assert call["row_filter"].equals == {"state": "OR"}
    assert call["row_filter"].ranges == {"total_cost": (None, 30000.0)}


def test_netlify_function_path_is_served():
    response = client.get("/.netlify/functions/items")
    assert response.status_code == 200
    assert response.json()["count"] == 1


def test_out_of_range_limit_returns_400():
    response = client.get("/api/items", params={"limit": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


def test_malformed_filter_returns_400():
    response = client.get("/api/items", params={"range": "total_cost:abc:"})
    assert response.status_code == 400
    assert "not a number" in response.json()["detail"]


def test_business_error_returns_502_with_upstream_detail():
    errors = [{"message": "User unauthorized to perform action", "extensions": {"code": "UserUnauthorizedException"}}]
    _with_service(FailingService(UpstreamBusinessError("Board API returned errors", errors=errors, status_code=403)))

    response = client.get("/api/items")

    assert response.status_code == 502
    payload = response.json()
    assert payload["error"] == "upstream_error"
    assert payload["errors"] == errors
    assert payload["upstreamStatus"] == 403


def test_exhausted_retries_return_503():
    exc = UpstreamUnavailableError("Board API unavailable", attempts=4, last_page_size=10, last_error=None)
    _with_service(FailingService(exc))

    response = client.get("/api/items")

    assert response.status_code == 503
    payload = response.json()
    assert payload["error"] == "upstream_unavailable"
    assert payload["attempts"] == 4
    assert payload["lastPageSize"] == 10


def test_missing_token_returns_500_with_setting_name():
    _with_service(FailingService(ConfigurationError("MONDAY_API_TOKEN")))

    response = client.get("/api/items")

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "configuration_error"
    assert payload["setting"] == "MONDAY_API_TOKEN"


def test_debug_env_reports_token_presence():
    response = client.get("/api/items", params={"debug": "env"})
    assert response.status_code == 200
    assert response.json() == {
        "hasToken": True,
        "approxLength": 40,
        "tokenStartsWith": "eyJ",
        "boardId": "2761790925",
        "apiVersion": "2024-10",
    }
    assert fake_service.calls == []


def test_debug_boards_route():
    response = client.get("/api/debug/boards")
    assert response.status_code == 200
    assert response.json()[0]["name"] == "Colleges"


def test_unknown_debug_mode_returns_400():
    response = client.get("/api/items", params={"debug": "everything"})
    assert response.status_code == 400


def test_debug_modes_can_be_disabled():
    app.dependency_overrides[get_settings] = lambda: Settings(
        monday_api_token="x",
        monday_board_id="1",
        debug_endpoints_enabled=False,
    )
    assert client.get("/api/items", params={"debug": "env"}).status_code == 404
    assert client.get("/api/debug/env").status_code == 404


def test_cors_header_on_cross_origin_request():
    response = client.get("/api/items", headers={"Origin": "https://example.org"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_falsy_debug_value_serves_items():
    response = client.get("/api/items", params={"debug": "0"})
    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert len(fake_service.calls) == 1


def test_openapi_documents_error_body_for_service_errors():
    responses = app.openapi()["paths"]["/api/items"]["get"]["responses"]
    schema_ref = responses["503"]["content"]["application/json"]["schema"]["$ref"]
    assert schema_ref.endswith("/ErrorResponse")


async def _no_sleep(seconds):
    return None


def shareable_item(item_id):
    return {
        "id": item_id,
        "name": f"College {item_id}",
        "column_values": [{"id": "status_shareable", "type": "status", "text": "Yes", "value": None}],
    }


def first_page(items, cursor):
    return {
        "data": {
            "boards": [
                {
                    "id": "2761790925",
                    "name": "Colleges",
                    "columns": [],
                    "items_page": {"cursor": cursor, "items": items},
                }
            ]
        }
    }


def make_live_service(handler):
    settings = Settings(monday_api_token="tok-123", monday_board_id="2761790925")
    board_client = MondayClient(
        settings.monday_api_token,
        settings.monday_board_id,
        transport=httpx.MockTransport(handler),
    )
    schema = BoardSchema()
    engine = PaginationEngine(
        fetcher=ResilientPageFetcher(board_client, RetryPolicy(jitter_seconds=0.0), sleep=_no_sleep),
        deriver=RowDeriver(schema),
    )
    return ItemsService(settings=settings, client=board_client, engine=engine, schema=schema)


def test_cursor_expiry_on_third_page_returns_first_two_pages_and_null_cursor():
    def handler(request):
        variables = json.loads(request.content)["variables"]
        cursor = variables.get("cursor")
        if cursor is None:
            return httpx.Response(200, json=first_page([shareable_item("1"), shareable_item("2")], "C1"))
        if cursor == "C1":
            page = {"cursor": "C2", "items": [shareable_item("3"), shareable_item("4")]}
            return httpx.Response(200, json={"data": {"next_items_page": page}})
        return httpx.Response(
            200,
            json={"errors": [{"message": "CursorExpiredError: The cursor provided for pagination has expired."}]},
        )

    _with_service(make_live_service(handler))

    response = client.get("/api/items", params={"limit": 2, "minFirst": 50})

    assert response.status_code == 200
    payload = response.json()
    assert [item["id"] for item in payload["items"]] == ["1", "2", "3", "4"]
    assert payload["cursor"] is None
    assert payload["meta"]["cursorReset"] is True
    assert payload["meta"]["stopReason"] == "cursor_expired"
    assert payload["meta"]["pagesFetched"] == 2


def test_retries_exhausted_after_first_page_return_503():
    calls = []

    def handler(request):
        variables = json.loads(request.content)["variables"]
        calls.append(variables)
        if variables.get("cursor") is None:
            return httpx.Response(200, json=first_page([shareable_item("1")], "C1"))
        return httpx.Response(503, json={"error_message": "Service unavailable"})

    _with_service(make_live_service(handler))

    response = client.get("/api/items", params={"limit": 50, "minFirst": 50})

    assert response.status_code == 503
    payload = response.json()
    assert payload["error"] == "upstream_unavailable"
    assert payload["lastPageSize"] == 10
    assert payload["attempts"] == 6
    assert [call["limit"] for call in calls] == [50, 50, 50, 25, 25, 10, 10]
