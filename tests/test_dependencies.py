import pytest
from fastapi import HTTPException

from board_items.api.dependencies import clear_dependency_caches, get_service, require_debug_enabled
from board_items.core.config import Settings


@pytest.fixture(autouse=True)
def fresh_dependencies():
    clear_dependency_caches()
    yield
    clear_dependency_caches()


def make_settings(**overrides):
    values = {"monday_api_token": "tok-123", "monday_board_id": "2761790925"}
    values.update(overrides)
    return Settings(**values)


def test_service_is_reused_for_identical_settings():
    settings = make_settings()
    service = get_service(settings)

    assert get_service(settings) is service
    assert service.client.board_id == "2761790925"
    assert service.cache.ttl_seconds == 30.0


def test_clearing_caches_builds_a_fresh_service():
    settings = make_settings()
    first = get_service(settings)

    clear_dependency_caches()

    second = get_service(settings)
    assert second is not first
    assert second.cache is not first.cache


def test_schema_override_flows_into_service():
    service = get_service(make_settings(board_schema_json='{"columns": {"tuition": "numbers7"}}'))
    assert service.schema.column_id("tuition") == "numbers7"


def test_debug_guard_rejects_when_disabled():
    require_debug_enabled(make_settings())
    with pytest.raises(HTTPException) as exc:
        require_debug_enabled(make_settings(debug_endpoints_enabled=False))
    assert exc.value.status_code == 404
