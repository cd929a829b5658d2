# tests/unit/test_config.py
"""
Unit tests for configuration loading (YAML layers + environment).
"""

import pytest

from repairdesk.config import ConfigLoader, RepairDeskConfig, SupabaseConfig

ENV_VARS = [
    "REPAIRDESK_ENV",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "SUPABASE_ANON_KEY",
    "ADMIN_PASSWORD",
    "SECRET_KEY",
    "REPAIRDESK_LOCAL_DB",
    "REPAIRDESK_LOG_LEVEL",
    "REPAIRDESK_JOB_CARD_PREFIX",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "default.yaml").write_text(
        "log_level: INFO\n"
        "supabase:\n"
        "  table: equipment\n"
        "sync:\n"
        "  local_db_path: default.db\n"
        "  job_card_prefix: COMETZ\n"
    )
    (tmp_path / "staging.yaml").write_text(
        "log_level: WARNING\n"
        "sync:\n"
        "  local_db_path: staging.db\n"
    )
    return tmp_path


class TestConfigLoader:

    def test_defaults_without_files(self, clean_env, tmp_path):
        config = ConfigLoader(str(tmp_path)).get()

        assert config.environment == "development"
        assert config.sync.job_card_prefix == "COMETZ"
        assert config.auth.admin_password == "admin123"
        assert config.supabase.is_configured is False

    def test_environment_file_overrides_default(self, clean_env, config_dir):
        clean_env.setenv("REPAIRDESK_ENV", "staging")

        config = ConfigLoader(str(config_dir)).get()

        assert config.environment == "staging"
        assert config.log_level == "WARNING"
        assert config.sync.local_db_path == "staging.db"
        assert config.sync.job_card_prefix == "COMETZ"

    def test_environment_variables_win(self, clean_env, config_dir):
        clean_env.setenv("SUPABASE_URL", "https://demo.supabase.co")
        clean_env.setenv("SUPABASE_KEY", "anon")
        clean_env.setenv("ADMIN_PASSWORD", "s3cret")
        clean_env.setenv("REPAIRDESK_LOCAL_DB", "/tmp/desk.db")
        clean_env.setenv("REPAIRDESK_JOB_CARD_PREFIX", "WS")
        clean_env.setenv("REPAIRDESK_LOG_LEVEL", "DEBUG")

        config = ConfigLoader(str(config_dir)).get()

        assert config.supabase.url == "https://demo.supabase.co"
        assert config.supabase.is_configured is True
        assert config.auth.admin_password == "s3cret"
        assert config.sync.local_db_path == "/tmp/desk.db"
        assert config.sync.job_card_prefix == "WS"
        assert config.log_level == "DEBUG"

    def test_anon_key_fallback(self, clean_env, tmp_path):
        clean_env.setenv("SUPABASE_ANON_KEY", "anon-key")

        assert ConfigLoader(str(tmp_path)).get().supabase.key == "anon-key"

    def test_get_caches_loaded_config(self, clean_env, tmp_path):
        loader = ConfigLoader(str(tmp_path))
        first = loader.get()
        clean_env.setenv("REPAIRDESK_JOB_CARD_PREFIX", "NEW")

        assert loader.get() is first
        assert loader.get().sync.job_card_prefix == "COMETZ"

    def test_invalid_yaml_is_ignored(self, clean_env, tmp_path):
        (tmp_path / "default.yaml").write_text("sync: [unclosed\n")

        assert ConfigLoader(str(tmp_path)).get().sync.local_db_path == "repairdesk_local.db"


class TestConfigModels:

    def test_supabase_is_configured_needs_both(self):
        assert SupabaseConfig(url="https://x.supabase.co", key="k").is_configured
        assert not SupabaseConfig(url="https://x.supabase.co").is_configured

    def test_nested_defaults(self):
        config = RepairDeskConfig()

        assert config.connectivity.check_interval == 30
        assert config.sync.namespace == "repairdesk"
