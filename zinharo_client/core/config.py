from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from zinharo_client.core.retry import Cooldowns, WorkerCooldowns
from zinharo_client.services.wordlist import DEFAULT_WORDLIST_URL


class Settings(BaseSettings):
    environment: str = "dev"
    api_base_url: str = "http://0.0.0.0:8082/"
    username: str | None = None
    password: str | None = None
    signup: bool = False
    request_timeout_seconds: float = 30.0
    login_ratelimit_cooldown_seconds: float = 30.0
    login_transport_cooldown_seconds: float = 30.0
    signup_ratelimit_cooldown_seconds: float = 3600.0
    signup_transport_cooldown_seconds: float = 30.0
    lease_ratelimit_cooldown_seconds: float = 60.0
    lease_transport_cooldown_seconds: float = 30.0
    no_work_cooldown_seconds: float = 120.0
    submit_ratelimit_cooldown_seconds: float = 30.0
    submit_transport_cooldown_seconds: float = 10.0
    report_ratelimit_cooldown_seconds: float = 30.0
    report_transport_cooldown_seconds: float = 10.0
    unsuccessful_job_cooldown_seconds: float = 30.0
    wordlist_path: Path = Path("wordlist.txt")
    wordlist_url: str = DEFAULT_WORDLIST_URL
    work_dir: Path = Path(".")
    aircrack_path: str = "aircrack-ng"
    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_service_name: str = "zinharo-client"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="ZINHARO_", extra="ignore")

    def worker_cooldowns(self) -> WorkerCooldowns:
        return WorkerCooldowns(
            login=Cooldowns(
                ratelimited=self.login_ratelimit_cooldown_seconds,
                transport_failure=self.login_transport_cooldown_seconds,
            ),
            signup=Cooldowns(
                ratelimited=self.signup_ratelimit_cooldown_seconds,
                transport_failure=self.signup_transport_cooldown_seconds,
            ),
            lease=Cooldowns(
                ratelimited=self.lease_ratelimit_cooldown_seconds,
                transport_failure=self.lease_transport_cooldown_seconds,
                no_work=self.no_work_cooldown_seconds,
            ),
            submit=Cooldowns(
                ratelimited=self.submit_ratelimit_cooldown_seconds,
                transport_failure=self.submit_transport_cooldown_seconds,
            ),
            report=Cooldowns(
                ratelimited=self.report_ratelimit_cooldown_seconds,
                transport_failure=self.report_transport_cooldown_seconds,
            ),
            unsuccessful_job=self.unsuccessful_job_cooldown_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
