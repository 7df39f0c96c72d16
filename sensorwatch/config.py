"""Configuration for the application."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Configuration for database."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="sensorwatch", description="Database name")
    user: str = Field(default="sensorwatch", description="Database user")
    password: str = Field(default="sensorwatch", description="Database password")
    dsn: str | None = Field(default=None, description="Full async URL, overrides the fields above")

    @property
    def async_url(self) -> str:
        """Get asynchronous database URL."""
        if self.dsn:
            return self.dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class MonitoringConfig(BaseSettings):
    """Configuration for device health and alert evaluation."""

    model_config = SettingsConfigDict(env_prefix="MONITORING_", env_file=".env", extra="ignore")

    default_interval_min: int = Field(default=15, description="Reporting interval assumed when a device has none")
    min_interval_min: int = Field(default=5, ge=1, description="Smallest reporting interval accepted")
    max_interval_min: int = Field(default=120, ge=1, description="Largest reporting interval accepted")
    interval_step_min: int = Field(default=5, ge=1, description="Granularity of the reporting interval options")
    offline_grace_factor: float = Field(
        default=2.0, gt=0, description="Missed-interval multiple after which a device counts as offline"
    )
    rollup_window_hours: int = Field(default=24, ge=1, description="Trailing window for high/low rollups")
    rollup_max_readings: int = Field(default=500, ge=1, description="Readings fetched for a rollup window")
    alert_history_limit: int = Field(default=50, ge=1, description="Maximum alert events returned per query")
    max_batch_size: int = Field(default=500, ge=1, description="Maximum readings accepted in one ingest batch")
    future_tolerance_s: int = Field(
        default=300, ge=0, description="Seconds a reading may be ahead of the server clock and still be evaluated"
    )
    recent_readings_limit: int = Field(default=500, ge=1, description="Readings returned for a device history view")


class LoggingConfig(BaseSettings):
    """Configuration for logging sinks."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = Field(default="INFO", description="Console log level")
    file: str | None = Field(default="logs/sensorwatch.log", description="Rotating log file (None disables it)")
    rotation: str = Field(default="100 MB", description="Log file rotation size")
    retention: str = Field(default="30 days", description="Log file retention")


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
