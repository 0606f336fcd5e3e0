from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REVORA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Ownership units
    UNIT_DECIMALS: int = 18  # fixed-point precision of ownership units

    # Distributions
    DEFAULT_CLAIM_PERIOD_DAYS: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # JSON lines instead of console rendering


settings = LedgerSettings()
