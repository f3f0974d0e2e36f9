import pytest

from board_items.core.config import DEFAULT_BOARD_ID, clear_settings_cache, get_settings
from board_items.core.exceptions import ConfigurationError
from board_items.models import EligibilityPolicy, FieldKind, load_board_schema

ENV_NAMES = (
    "MONDAY_API_TOKEN",
    "MONDAY_TOKEN",
    "MONDAY_API_KEY",
    "MONDAY_BOARD_ID",
    "BOARD_ID",
    "PAGE_SIZE_LADDER",
    "DEBUG_ENDPOINTS_ENABLED",
    "CORS_ALLOW_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


def test_defaults_without_environment():
    settings = get_settings()
    assert settings.monday_api_token == ""
    assert settings.monday_board_id == DEFAULT_BOARD_ID
    assert settings.page_size_ladder == (50, 25, 10)
    assert settings.debug_endpoints_enabled is True


def test_token_fallback_names(monkeypatch):
    monkeypatch.setenv("MONDAY_API_KEY", "  from-key  ")
    assert get_settings().monday_api_token == "from-key"
    clear_settings_cache()
    monkeypatch.setenv("MONDAY_API_TOKEN", "primary")
    assert get_settings().monday_api_token == "primary"


def test_ladder_and_flags_parsing(monkeypatch):
    monkeypatch.setenv("PAGE_SIZE_LADDER", "40, x, 20,-5")
    monkeypatch.setenv("DEBUG_ENDPOINTS_ENABLED", "off")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")
    settings = get_settings()
    assert settings.page_size_ladder == (40, 20)
    assert settings.debug_endpoints_enabled is False
    assert settings.cors_allow_origins == ("https://a.example", "https://b.example")


def test_dotenv_file_is_loaded_without_overriding_environment(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text('MONDAY_TOKEN="dotenv-token"\nBOARD_ID=123\n# comment\n', encoding="utf-8")
    monkeypatch.setenv("BOARD_ID", "999")
    settings = get_settings()
    assert settings.monday_api_token == "dotenv-token"
    assert settings.monday_board_id == "999"


def test_board_schema_partial_override_keeps_defaults():
    schema = load_board_schema(
        '{"columns": {"tuition": {"column_id": "numbers7", "kind": "number"}, "region": "text9"},'
        ' "inclusion_index": 4, "eligibility_policy": "exact_yes"}'
    )
    assert schema.column_id("tuition") == "numbers7"
    assert schema.columns["region"].kind == FieldKind.TEXT
    assert schema.column_id("fees") == "numeric_fees"
    assert schema.inclusion_index == 4
    assert schema.eligibility_policy == EligibilityPolicy.EXACT_YES


@pytest.mark.parametrize("raw", ["{broken", "[1, 2]", '{"columns": ["tuition"]}', '{"hours_per_week": "many"}'])
def test_invalid_board_schema_is_configuration_error(raw):
    with pytest.raises(ConfigurationError):
        load_board_schema(raw)
