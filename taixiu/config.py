from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Tuning(BaseModel):
    # learning
    ledger_size: int = 500
    accuracy_window: int = 50
    rolling_window: int = 20
    min_samples: int = 5
    weight_min: float = 0.3
    weight_max: float = 2.0
    weight_growth: float = 1.05
    weight_decay: float = 0.95
    grow_above: float = 0.6
    shrink_below: float = 0.4
    # reversal / voting
    reversal_threshold: int = 3
    deep_loss_streak: int = 5  # 0 disables the flip
    smart_margin: float = 0.5
    markov_margin: float = 0.1
    markov_decay: float = 0.9
    confidence_floor: int = 50
    confidence_ceiling: int = 85
    jitter: float = 2.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_nested_delimiter='__', extra='ignore')

    db_dsn: str = "sqlite:///./data/tai_xiu.db"
    window: int = 50
    source_url: str = "https://sun-ls.onrender.com/sunlon"
    source_timeout: float = 10.0
    poll_interval: float = 30.0
    poll_enabled: bool = True
    history_limit: int = 100
    api_key: str | None = None
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    tuning: Tuning = Tuning()


settings = Settings()
