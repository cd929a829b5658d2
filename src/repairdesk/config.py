"""
Configuration loader for RepairDesk.
Loads configuration from YAML files and environment variables.
"""

from typing import Dict, Any, Optional
from pathlib import Path
import yaml
import os
from pydantic import BaseModel, Field
import logging

logger = logging.getLogger(__name__)


class SupabaseConfig(BaseModel):
    """Hosted database connection settings."""

    url: str = ""
    key: str = ""
    table: str = "equipment"

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


class SyncConfig(BaseModel):
    """Offline queue and local cache configuration."""

    # SQLite file holding the queue and the cached snapshot (":memory:" for tests)
    local_db_path: str = "repairdesk_local.db"
    namespace: str = "repairdesk"

    # Job card numbers look like COMETZ26/00042
    job_card_prefix: str = "COMETZ"

    # How many user-visible notices to keep
    max_notices: int = 50

    class Config:
        extra = "allow"


class ConnectivityConfig(BaseModel):
    """Connectivity probe configuration."""

    check_interval: float = 30  # seconds
    probe_timeout: float = 5  # seconds

    class Config:
        extra = "allow"


class AuthConfig(BaseModel):
    """Shared role password settings."""

    admin_password: str = "admin123"
    secret_key: str = "repairdesk-default-secret"
    session_duration_hours: int = 12


class RepairDeskConfig(BaseModel):
    """Main RepairDesk configuration."""

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    connectivity: ConnectivityConfig = Field(default_factory=ConnectivityConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)

    class Config:
        extra = "allow"


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge nested dicts; override wins."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Load and manage RepairDesk configuration."""

    def __init__(self, config_dir: str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing config files
        """
        self.config_dir = Path(config_dir)
        self.config: Optional[RepairDeskConfig] = None
        self.load()

    def load(self) -> RepairDeskConfig:
        """Load configuration from YAML and environment variables."""

        # Determine which config file to load
        env = os.getenv("REPAIRDESK_ENV", "development")
        config_file = self.config_dir / f"{env}.yaml"

        # Load default config first
        config_data = self._load_yaml(self.config_dir / "default.yaml")

        # Override with environment-specific config
        if config_file.exists():
            config_data = _merge(config_data, self._load_yaml(config_file))
        else:
            logger.debug(f"Config file not found: {config_file}, using defaults")

        # Override with environment variables
        config_data = _merge(config_data, self._load_from_env())
        config_data.setdefault("environment", env)

        self.config = RepairDeskConfig(**config_data)

        logger.info(
            f"Configuration loaded (environment: {env}, "
            f"supabase configured: {self.config.supabase.is_configured})"
        )

        return self.config

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML config file."""
        if not path.exists():
            return {}

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
                return data or {}
        except Exception as e:
            logger.error(f"Failed to load YAML config {path}: {e}")
            return {}

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        supabase = {}
        if supabase_url := os.getenv("SUPABASE_URL"):
            supabase["url"] = supabase_url
        if supabase_key := os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_ANON_KEY"):
            supabase["key"] = supabase_key
        if supabase:
            config["supabase"] = supabase

        sync = {}
        if local_db := os.getenv("REPAIRDESK_LOCAL_DB"):
            sync["local_db_path"] = local_db
        if prefix := os.getenv("REPAIRDESK_JOB_CARD_PREFIX"):
            sync["job_card_prefix"] = prefix
        if sync:
            config["sync"] = sync

        auth = {}
        if admin_password := os.getenv("ADMIN_PASSWORD"):
            auth["admin_password"] = admin_password
        if secret_key := os.getenv("SECRET_KEY"):
            auth["secret_key"] = secret_key
        if auth:
            config["auth"] = auth

        if log_level := os.getenv("REPAIRDESK_LOG_LEVEL"):
            config["log_level"] = log_level

        return config

    def get(self) -> RepairDeskConfig:
        """Get current configuration."""
        if not self.config:
            self.load()
        return self.config


# Global config instance
_global_config_loader: Optional[ConfigLoader] = None


def get_config() -> RepairDeskConfig:
    """Get the global RepairDesk configuration."""
    global _global_config_loader
    if _global_config_loader is None:
        _global_config_loader = ConfigLoader()
    return _global_config_loader.get()
