"""
Config loading via Pydantic v2 and python-dotenv.

.env からの設定読み込みと基本的なバリデーション。
"""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, computed_field


BASE_DIR = Path(__file__).resolve().parents[2]
# Docker では DATA_DIR=/app/data を指定して volume をマウントすると状態が残る
DATA_DIR = Path(os.environ.get("DATA_DIR", str(BASE_DIR / "data")))
ENV_PATH = BASE_DIR / ".env"

DEFAULT_TARGET_URL = "https://select-type.com/rsv/?id=0AEeQuFE0HM"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SlotWatchBot/1.0; +notification-only)"

# .env があれば明示的に読み込む
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=False)


class BotConfig(BaseModel):
    token: str = Field(min_length=1)
    # 0 のときは誰でも操作できる
    admin_chat_id: int = 0

    @computed_field  # type: ignore[misc]
    @property
    def admin_only(self) -> bool:
        return self.admin_chat_id != 0


class TargetConfig(BaseModel):
    url: str = DEFAULT_TARGET_URL
    timeout_seconds: float = Field(default=30.0, ge=1)
    user_agent: str = DEFAULT_USER_AGENT


class SchedulerConfig(BaseModel):
    tick_seconds: int = Field(default=60, ge=10)


class StoreConfig(BaseModel):
    store_dir: Path = Field(default_factory=lambda: DATA_DIR / "store")


class LoggingConfig(BaseModel):
    logs_dir: Path = Field(default_factory=lambda: BASE_DIR / "logs")
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="slotwatch.log")
    max_bytes: int = Field(default=5 * 1024 * 1024)  # 5 MB
    backup_count: int = Field(default=5)


class Settings(BaseModel):
    bot: BotConfig
    target: TargetConfig = TargetConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    store: StoreConfig = StoreConfig()
    logging: LoggingConfig = LoggingConfig()


@lru_cache
def get_settings() -> Settings:
    """
    Load and cache settings.

    Raises ValidationError if .env is incomplete or invalid.
    """
    # pydantic-settings に依存しないよう環境変数を手動で集める
    env = os.environ

    try:
        bot = BotConfig(
            token=env.get("BOT_TOKEN", ""),
            admin_chat_id=int(env.get("ADMIN_CHAT_ID", "0") or "0"),
        )
        target = TargetConfig(
            url=env.get("TARGET_URL", DEFAULT_TARGET_URL),
            timeout_seconds=float(env.get("FETCH_TIMEOUT", "30")),
            user_agent=env.get("USER_AGENT", DEFAULT_USER_AGENT),
        )
        scheduler = SchedulerConfig(
            tick_seconds=int(env.get("TICK_SECONDS", "60")),
        )
        store = StoreConfig(
            store_dir=Path(env.get("STORE_DIR", str(DATA_DIR / "store"))),
        )
        logging_cfg = LoggingConfig(
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_file=env.get("LOG_FILE", "slotwatch.log"),
        )
        return Settings(
            bot=bot,
            target=target,
            scheduler=scheduler,
            store=store,
            logging=logging_cfg,
        )
    except ValidationError:
        # 上位でエラーを整形して表示できるようにそのまま投げる
        raise


__all__ = ["Settings", "get_settings", "BASE_DIR", "DATA_DIR"]
