from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Ceiling for IN (...) lookups against the relation store
MAX_STORE_BATCH_SIZE = 100

DEFAULT_ROOT_VIEWPOINT_GROUP_ID = "4d627244-5598-4403-8704-979140ae9cac"


class NetworkDepth(str, Enum):
    """
    How far network resolution walks from the root group.

    - ONE_HOP: root + groups led by supporters of the root
    - TRANSITIVE: keep walking (leaders of leaders ...) until closure
    """

    ONE_HOP = "one_hop"
    TRANSITIVE = "transitive"


class TimeSeriesMergeMode(str, Enum):
    """
    EXACT re-derives multi-group series from raw relations (deduped by profile).
    APPROXIMATE sums precomputed per-group rollups; over-counts shared supporters.
    """

    EXACT = "exact"
    APPROXIMATE = "approximate"


def _split_origins(raw: Any) -> List[str]:
    """
    Normalize CORS allow origins from env.

    Supports:
      - list[str] (already parsed)
      - "*"
      - comma-separated string: "https://a.com, https://b.com"
    """
    if raw is None:
        return ["*"]

    if isinstance(raw, list):
        items = [str(x).strip() for x in raw]
        items = [x for x in items if x]
        return items or ["*"]

    s = str(raw).strip()
    if not s or s == "*":
        return ["*"]

    if "," in s:
        parts = [p.strip() for p in s.split(",")]
        parts = [p for p in parts if p]
        return parts or ["*"]

    return [s]


class Settings(BaseSettings):
    """
    Central settings for the influence analytics service.

    Everything the aggregation core treats as policy (batch ceiling, retry
    shape, network depth, rollup preference, windows, thresholds) lives here
    so it can be injected per process or overridden in tests.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # App identity
    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="influence-dashboard", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server runtime (uvicorn)
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # NoDecode: env values reach _split_origins raw (comma-separated or "*")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    # Relation store
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_path: str = Field(default="./data/influence.sqlite", alias="DB_PATH")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")
    statement_timeout_ms: int = Field(default=30000, alias="STATEMENT_TIMEOUT_MS")
    store_batch_size: int = Field(default=MAX_STORE_BATCH_SIZE, alias="STORE_BATCH_SIZE")

    # Retry policy applied at the store boundary
    retry_attempts: int = Field(default=3, alias="STORE_RETRY_ATTEMPTS")
    retry_base_delay: float = Field(default=1.0, alias="STORE_RETRY_BASE_DELAY")

    # Fan-out inside a single request
    max_workers: int = Field(default=8, alias="MAX_WORKERS")

    # Aggregation policy
    root_viewpoint_group_id: str = Field(default=DEFAULT_ROOT_VIEWPOINT_GROUP_ID, alias="ROOT_VIEWPOINT_GROUP_ID")
    network_depth: NetworkDepth = Field(default=NetworkDepth.ONE_HOP, alias="NETWORK_DEPTH")
    prefer_rollup_views: bool = Field(default=True, alias="PREFER_ROLLUP_VIEWS")
    rollup_max_age_minutes: int = Field(default=60, alias="ROLLUP_MAX_AGE_MINUTES")
    timeseries_merge_mode: TimeSeriesMergeMode = Field(default=TimeSeriesMergeMode.EXACT, alias="TIMESERIES_MERGE_MODE")
    default_days_ahead: int = Field(default=90, alias="DEFAULT_DAYS_AHEAD")
    active_window_days: int = Field(default=30, alias="ACTIVE_WINDOW_DAYS")
    high_leverage_threshold: float = Field(default=5.0, alias="HIGH_LEVERAGE_THRESHOLD")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _norm_cors_allow_origins(cls, v: Any) -> list[str]:
        return _split_origins(v)

    @field_validator("host", mode="before")
    @classmethod
    def _norm_host(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "127.0.0.1"

    @field_validator("database_url", mode="before")
    @classmethod
    def _norm_database_url(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("db_path", mode="before")
    @classmethod
    def _norm_db_path(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "./data/influence.sqlite"

    @field_validator("root_viewpoint_group_id", mode="before")
    @classmethod
    def _norm_root_group(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or DEFAULT_ROOT_VIEWPOINT_GROUP_ID

    @field_validator("store_batch_size", mode="before")
    @classmethod
    def _clamp_batch_size(cls, v: Any) -> int:
        try:
            n = int(v)
        except (TypeError, ValueError):
            return MAX_STORE_BATCH_SIZE
        return max(1, min(n, MAX_STORE_BATCH_SIZE))

    @field_validator("retry_attempts", "max_workers", mode="before")
    @classmethod
    def _at_least_one(cls, v: Any) -> int:
        try:
            n = int(v)
        except (TypeError, ValueError):
            return 1
        return max(1, n)

    @field_validator("network_depth", mode="before")
    @classmethod
    def _norm_network_depth(cls, v: Any) -> str:
        if isinstance(v, Enum):
            v = v.value
        s = ("" if v is None else str(v)).strip().lower().replace("-", "_")
        return s or NetworkDepth.ONE_HOP.value

    @field_validator("timeseries_merge_mode", mode="before")
    @classmethod
    def _norm_merge_mode(cls, v: Any) -> str:
        if isinstance(v, Enum):
            v = v.value
        s = ("" if v is None else str(v)).strip().lower()
        return s or TimeSeriesMergeMode.EXACT.value

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def resolved_database_url(self) -> str:
        """
        Priority:
        1) DATABASE_URL if provided
        2) Build sqlite:/// URL from DB_PATH
        """
        if self.database_url:
            return self.database_url

        path = (self.db_path or "").strip() or "./data/influence.sqlite"

        if path.startswith("sqlite:"):
            return path

        p = Path(path)
        if not p.is_absolute():
            if str(p).startswith("./"):
                return f"sqlite:///{p.as_posix()}"
            return f"sqlite:///./{p.as_posix()}"

        # Absolute path needs 4 slashes after scheme (sqlite:////abs/path)
        return f"sqlite:////{p.as_posix().lstrip('/')}"


settings = Settings()
