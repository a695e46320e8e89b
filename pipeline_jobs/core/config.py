import re
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pipeline_jobs.core.constants import Environment, ExecutionMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Environment Profile
    environment: Environment = Environment.LOCAL
    execution_mode_override: Optional[ExecutionMode] = None

    # Build identity
    project_id: str = "pipeline"
    build_id: Optional[str] = None  # Generated per runner when unset

    # Kubernetes
    namespace: str = "default"
    default_service_account: Optional[str] = None
    source_claim_name: Optional[str] = None  # VCS checkout shared by the build
    storage_claim_name: Optional[str] = None  # Build-wide shared storage
    cache_storage_class: Optional[str] = None

    # Docker (local mode)
    docker_network: Optional[str] = None
    docker_source_dir: Optional[str] = None

    # Job defaults
    default_shell: str = "/bin/sh"
    default_timeout_ms: int = 15 * 60 * 1000

    # Runner polling
    poll_interval_seconds: float = 2.0
    schedule_timeout_seconds: float = 300.0
    log_poll_interval_seconds: float = 1.0

    # OpenTelemetry
    otel_service_name: str = "pipeline-jobs"
    otel_exporter_endpoint: Optional[str] = None  # OTLP/HTTP base URL
    otel_exporter_token: Optional[str] = None

    @field_validator("build_id")
    @classmethod
    def normalize_build_id(cls, v: Optional[str]) -> Optional[str]:
        """Build ids end up in pod names and labels, so keep them DNS-safe."""
        if v is None:
            return None
        return re.sub(r"[^-a-z0-9]", "-", v.lower()).strip("-") or None

    @property
    def execution_mode(self) -> ExecutionMode:
        """Auto-select execution backend based on environment."""
        if self.execution_mode_override is not None:
            return self.execution_mode_override
        return (
            ExecutionMode.DOCKER
            if self.environment == Environment.LOCAL
            else ExecutionMode.K8S
        )

    @property
    def storage_claim(self) -> Optional[str]:
        """Claim backing build-wide storage, defaulting to one per build."""
        if self.storage_claim_name:
            return self.storage_claim_name
        if self.build_id:
            return f"{self.project_id}-{self.build_id}-storage".lower()
        return None


settings = Settings()
