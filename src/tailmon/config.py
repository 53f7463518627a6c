from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "TAILMON_"}

    # Upstream metrics server
    server_url: str = "http://127.0.0.1:3000"
    metrics_path: str = "/api/all_metrics"
    fetch_timeout_seconds: float = 10.0

    # Refresh
    refresh_interval_ms: int = 3000

    # Status thresholds
    cpu_warning_percent: float = 60.0
    cpu_critical_percent: float = 80.0
    ram_warning_ratio: float = 0.7
    ram_critical_ratio: float = 0.9

    # Dashboard
    dashboard_host: str = "0.0.0.0"
    dashboard_port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_ms / 1000


settings = Settings()
