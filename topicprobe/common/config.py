"""Environment-driven defaults for the command-line options.

Every option that can come from the environment is declared here so the
argument parser and the logging setup read one typed source. A local `.env`
file is honoured as well.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProbeSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    kafka_topic_name: str | None = None
    kafka_bootstrap_servers: str | None = None
    kafka_group_id: str | None = None
    log_level: str = "INFO"
    topicprobe_client_id: str = "topicprobe"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def load_settings() -> ProbeSettings:
    """Read settings from the current environment."""

    return ProbeSettings()
