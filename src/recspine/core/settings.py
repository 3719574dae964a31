"""
Centralized settings for rec-spine.

Manifesto:
    Classification thresholds have no meaning beyond operational tuning, so
    every threshold, marker list and allow-list is configuration. Each is
    tunable per deployment through ``RECSPINE_*`` environment variables or a
    ``.env`` file and validated at startup. Tuning never reorders the rule
    table.

Examples:
    >>> settings = RecSpineSettings(classifier={"no_show_wait_seconds": 1200})
    >>> settings.classifier.no_show_wait_seconds
    1200

    Environment override (nested fields use ``__``)::

        RECSPINE_CLASSIFIER__SMALL_FILE_BYTES=2097152
        RECSPINE_LOOKUP_FAILURE_POLICY=fail-open

Tags:
    rec-spine, configuration, settings, pydantic, thresholds
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import ArchiveBackend, LookupFailurePolicy

MIB = 1024 * 1024


class ClassifierThresholds(BaseModel):
    """Thresholds and marker lists consulted by the category rule table.

    Comparisons are strict: "below" means ``<`` and "exceeds" means ``>``.
    Markers are matched case-insensitively. Trivial markers match whole
    words: "test" hits "Mic Test" but not "Contest", and "check" hits
    "check-in". "short" is not a marker; short recordings are left to the
    duration rules. Host allow-lists compare lower-cased host
    identities.
    """

    # ── Rule 1 ───────────────────────────────────────────────────
    trivial_topic_markers: list[str] = Field(
        default=[
            "test",
            "testing",
            "mic test",
            "quick test",
            "mic check",
            "check",
            "brief",
            "demo",
            "throwaway",
            "trivial",
            "dummy",
        ]
    )

    # ── Rule 2 ───────────────────────────────────────────────────
    small_file_bytes: int = Field(default=MIB, gt=0)
    short_duration_seconds: int = Field(default=60, gt=0)

    # ── Rule 3 ───────────────────────────────────────────────────
    medium_duration_seconds: int = Field(default=15 * 60, gt=0)
    medium_size_bytes: int = Field(default=50 * MIB, gt=0)
    admin_hosts: list[str] = Field(default_factory=list)

    # ── Rule 4 (no-show) ─────────────────────────────────────────
    coach_confidence_min: float = Field(default=0.7, ge=0.0, le=1.0)
    no_show_wait_seconds: int = Field(default=30 * 60, gt=0)
    ad_hoc_room_markers: list[str] = Field(default=["personal meeting room"])
    known_coach_hosts: list[str] = Field(default_factory=list)

    # ── Rule 5 ───────────────────────────────────────────────────
    attribution_confidence_min: float = Field(default=0.5, ge=0.0, le=1.0)
    substantial_size_bytes: int = Field(default=10 * MIB, gt=0)

    # ── Coaching refinement ──────────────────────────────────────
    game_plan_markers: list[str] = Field(default=["game plan", "gameplan", "game-plan"])
    sat_markers: list[str] = Field(default=["sat prep", "sat session"])

    @model_validator(mode="after")
    def _check_ordering(self) -> ClassifierThresholds:
        if self.medium_size_bytes < self.small_file_bytes:
            raise ValueError("medium_size_bytes must be >= small_file_bytes")
        if self.medium_duration_seconds < self.short_duration_seconds:
            raise ValueError("medium_duration_seconds must be >= short_duration_seconds")
        return self

    def is_admin_host(self, host: str | None) -> bool:
        return _host_listed(host, self.admin_hosts)

    def is_known_coach_host(self, host: str | None) -> bool:
        return _host_listed(host, self.known_coach_hosts)


def _host_listed(host: str | None, allow_list: list[str]) -> bool:
    if not host:
        return False
    return host.strip().lower() in {h.strip().lower() for h in allow_list}


class RecSpineSettings(BaseSettings):
    """rec-spine configuration.

    All fields can be set via ``RECSPINE_*`` environment variables or a
    ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    # ── Lookup / retry ───────────────────────────────────────────
    lookup_max_retries: int = Field(default=3, ge=0)
    lookup_base_delay: float = Field(default=0.5, ge=0.0)
    lookup_max_delay: float = Field(default=8.0, ge=0.0)
    lookup_failure_policy: LookupFailurePolicy = Field(default=LookupFailurePolicy.FAIL_CLOSED)

    # ── Approval ─────────────────────────────────────────────────
    auto_approve: bool = Field(
        default=False,
        description="Skip duplicates without prompting (the --auto-approve behaviour)",
    )

    # ── Archive ──────────────────────────────────────────────────
    archive_backend: ArchiveBackend = Field(default=ArchiveBackend.SQL)
    database_url: str = Field(default="sqlite:///data/recspine.db")
    database_echo: bool = Field(default=False)

    # ── Reconciliation ───────────────────────────────────────────
    topic_similarity_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    reconcile_max_workers: int = Field(default=1, ge=1)

    # ── Classification ───────────────────────────────────────────
    classifier: ClassifierThresholds = Field(default_factory=ClassifierThresholds)


@lru_cache(maxsize=1)
def get_settings() -> RecSpineSettings:
    """Return the settings resolved from the environment (cached)."""
    return RecSpineSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings (tests and reconfiguration)."""
    get_settings.cache_clear()
