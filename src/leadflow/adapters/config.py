# src/leadflow/adapters/config.py
from typing import Any, Literal, get_args

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from leadflow.domain.records import LeadStatus


class AppConfig(BaseSettings):
    # App & logging
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    # persistence
    DB_URI: str = Field(default="sqlite:///leadflow.db")

    # -----------------------------
    # Lead lifecycle
    # -----------------------------
    NO_RESPONSE_STATUS: str = Field(default="rnr_swo")
    LOST_STATUS: str = Field(default="lost")
    LOST_REASON: str = Field(
        default="Automatically moved to Lost after 45+ days in RNR/SWO without response"
    )
    SYSTEM_ACTOR: str = Field(default="system")

    # -----------------------------
    # Matching
    # -----------------------------
    MATCH_ACTIVE_STATUSES: list[str] = Field(
        default_factory=lambda: ["new", "contacted", "qualified", "interested"]
    )
    MATCH_MIN_SCORE: int = Field(default=30)
    MATCH_TOP_K: int = Field(default=5)
    MATCH_HIGHLY_SUITABLE_SCORE: int = Field(default=80)

    # "diff" keeps approved flags on pairs that still qualify; "replace" is the
    # legacy wipe-and-insert behaviour.
    MATCH_PERSIST_STRATEGY: Literal["diff", "replace"] = Field(default="diff")

    # Partial overrides of the named weight profiles, e.g.
    # LEADFLOW_MATCH_WEIGHTS_FULL='{"location": 35}'
    MATCH_WEIGHTS_FULL: dict[str, Any] = Field(default_factory=dict)
    MATCH_WEIGHTS_SINGLE: dict[str, Any] = Field(default_factory=dict)

    # -----------------------------
    # Escalation
    # -----------------------------
    FOLLOWUP_TIME: str = Field(default="10:00:00")
    BATCH_WORKERS: int = Field(default=4)

    # When true the batch also picks up rnr leads whose follow-up date is in
    # the past or was never set, so a skipped cron day does not strand them.
    ESCALATION_CATCH_UP_OVERDUE: bool = Field(default=False)

    # -----------------------------
    # Follow-up reminders
    # -----------------------------
    REMINDER_MANAGER_IDS: list[str] = Field(default_factory=list)
    REMINDER_DEFAULT_TIME: str = Field(default="09:00")

    model_config = SettingsConfigDict(
        env_prefix="LEADFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("NO_RESPONSE_STATUS", "LOST_STATUS")
    @classmethod
    def _known_status(cls, v: str) -> str:
        allowed = get_args(LeadStatus)
        if v not in allowed:
            raise ValueError(f"unknown lead status '{v}'; expected one of {', '.join(allowed)}")
        return v

    @field_validator("MATCH_PERSIST_STRATEGY", mode="before")
    @classmethod
    def _normalize_strategy(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("MATCH_MIN_SCORE", "MATCH_HIGHLY_SUITABLE_SCORE", mode="before")
    @classmethod
    def _score_range(cls, v: Any) -> Any:
        try:
            f = int(v)
        except Exception as err:
            raise ValueError("score threshold must be an integer") from err
        if not (0 <= f <= 100):
            raise ValueError("score threshold must be between 0 and 100")
        return f

    @field_validator("MATCH_TOP_K", "BATCH_WORKERS", mode="before")
    @classmethod
    def _positive(cls, v: Any) -> Any:
        f = int(v)
        if f <= 0:
            raise ValueError("must be > 0")
        return f


config = AppConfig()
