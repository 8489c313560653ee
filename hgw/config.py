import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings

from hgw.game import constants as C

# Hosted deployments set DATABASE_URL and PORT without a prefix; map them to
# the HGW_-prefixed names that pydantic-settings expects.
if "DATABASE_URL" in os.environ and "HGW_DATABASE_URL" not in os.environ:
    _url = os.environ["DATABASE_URL"]
    if _url.startswith("sqlite:///"):
        _url = _url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    os.environ["HGW_DATABASE_URL"] = _url

if "PORT" in os.environ and "HGW_PORT" not in os.environ:
    os.environ["HGW_PORT"] = os.environ["PORT"]


class BatcherConfig(BaseModel):
    """Immutable tuning knobs handed to every scheduler at construction."""

    model_config = ConfigDict(frozen=True)

    # RAM kept free on the home server for the orchestration scripts.
    home_reserve: float = C.HOME_RESERVE_DEFAULT
    # Extra wait added to every action (ms).
    buffer_time_ms: float = C.BUFFER_TIME
    # Retry delay when a dispatch had no worker to run on (ms).
    empty_botnet_delay_ms: float = C.WAIT_SECOND
    # Poll interval while launched processes are still running (ms).
    poll_interval_ms: float = C.WAIT_SECOND
    default_money_fraction: float = C.PSERV_DEFAULT_MONEY_FRACTION


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./hgw.db"
    TICK_RATE: float = 5.0
    # Multiplier applied to every simulated action duration.
    TIME_SCALE: float = 0.01
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    HOME_RAM_RESERVE: float = C.HOME_RESERVE_DEFAULT
    BUFFER_TIME_MS: float = C.BUFFER_TIME
    EMPTY_BOTNET_DELAY_MS: float = C.WAIT_SECOND
    POLL_INTERVAL_MS: float = C.WAIT_SECOND
    DEFAULT_MONEY_FRACTION: float = C.PSERV_DEFAULT_MONEY_FRACTION
    AUTOSTART_WORLD_BATCHER: bool = False

    model_config = {"env_prefix": "HGW_"}

    def batcher_config(self) -> BatcherConfig:
        return BatcherConfig(
            home_reserve=self.HOME_RAM_RESERVE,
            buffer_time_ms=self.BUFFER_TIME_MS,
            empty_botnet_delay_ms=self.EMPTY_BOTNET_DELAY_MS,
            poll_interval_ms=self.POLL_INTERVAL_MS,
            default_money_fraction=self.DEFAULT_MONEY_FRACTION,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
