# (c) Copyright Datacraft, 2026
"""Application settings configuration."""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	db_url: str = "sqlite:///ledgerflow.db"
	db_echo: bool = False
	db_create_tables: bool = False
	log_config: Path | None = Path("/etc/ledgerflow/logging.yaml")
	api_prefix: str = ''

	# Approval routing
	approval_fallback_role: str = "finance_director"
	escalation_roles: dict[str, str] = Field(
		default_factory=lambda: {
			"manager": "manager",
			"director": "director",
			"ceo": "ceo",
		}
	)
	default_escalation_hours: float | None = Field(default=None, gt=0)
	workflow_cache_enabled: bool = True

	# Escalation sweep (driven by celery beat)
	celery_broker_url: str | None = None
	escalation_sweep_interval_seconds: int = Field(gt=0, default=300)

	model_config = SettingsConfigDict(
		env_prefix='lf_',
		env_file='.env',
		env_file_encoding='utf-8',
		extra='ignore',
	)


_settings: Settings | None = None


def get_settings() -> Settings:
	global _settings
	if _settings is None:
		_settings = Settings()
	return _settings
