from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Export defaults snapshotted by ExtraSettings
    ENABLE_RULE_GENERATOR: bool = True
    OVERWRITE_ORIGINAL_RULES: bool = False
    SURGE_SSR_PATH: str = ""
    CLASH_PROXIES_STYLE: str = "flow"
    CLASH_PROXY_GROUPS_STYLE: str = "flow"

    # Filter script engine: comma-separated top-level module names exposed to scripts (e.g. "math")
    SCRIPT_EXTRA_MODULES: str = ""


settings = Settings()  # type: ignore
