"""Configuration management for the Training Analytics engine."""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


@dataclass(frozen=True)
class AnalysisThresholds:
    """Policy constants used by the analysis components.

    Balance and progress cutoffs are compared strictly (`<` / `>`).
    """

    # Muscle group balance (percentage of total monthly volume)
    underworked_pct: float = field(default_factory=lambda: _env_float("BALANCE_UNDERWORKED_PCT", "10"))
    overworked_pct: float = field(default_factory=lambda: _env_float("BALANCE_OVERWORKED_PCT", "35"))

    # Synergist/antagonist ratio band
    ideal_ratio: float = 1.0
    ratio_low: float = field(default_factory=lambda: _env_float("CORRELATION_RATIO_LOW", "0.7"))
    ratio_high: float = field(default_factory=lambda: _env_float("CORRELATION_RATIO_HIGH", "1.3"))
    symmetry_max_severity: int = 5
    symmetry_penalty_per_severity: float = field(default_factory=lambda: _env_float("SYMMETRY_PENALTY", "5"))

    # Exercise progression (percent change of session volume)
    deload_progress_pct: float = field(default_factory=lambda: _env_float("PROGRESS_DELOAD_PCT", "-10"))
    plateau_progress_pct: float = field(default_factory=lambda: _env_float("PROGRESS_PLATEAU_PCT", "2"))
    plateau_min_frequency: int = field(default_factory=lambda: _env_int("PLATEAU_MIN_FREQUENCY", "4"))
    high_frequency: int = field(default_factory=lambda: _env_int("HIGH_FREQUENCY", "8"))

    # Fatigue score weights and buckets
    fatigue_volume_weight: float = 0.4
    fatigue_frequency_weight: float = 0.3
    fatigue_intensity_weight: float = 0.3
    fatigue_moderate: float = field(default_factory=lambda: _env_float("FATIGUE_MODERATE", "50"))
    fatigue_high: float = field(default_factory=lambda: _env_float("FATIGUE_HIGH", "80"))
    fatigue_risk_frequency: int = field(default_factory=lambda: _env_int("FATIGUE_RISK_FREQUENCY", "3"))

    # Recovery days
    base_recovery_days: int = field(default_factory=lambda: _env_int("BASE_RECOVERY_DAYS", "2"))
    recovery_volume_threshold: float = field(default_factory=lambda: _env_float("RECOVERY_VOLUME_THRESHOLD", "15000"))
    recovery_intensity_threshold: float = field(default_factory=lambda: _env_float("RECOVERY_INTENSITY_THRESHOLD", "0.8"))

    # Training-wide recovery status (count of deload recommendations)
    deload_attention_count: int = 3
    deload_moderate_count: int = 1

    # Muscle development insights
    focus_weekly_volume: float = field(default_factory=lambda: _env_float("FOCUS_WEEKLY_VOLUME", "3000"))
    focus_weekly_frequency: int = 2
    focus_max_suggestions: int = 3
    development_monthly_volume: float = 50000
    development_monthly_frequency: int = 12
    limiting_intensity: float = 0.6
    trend_change_pct: float = 5


class Config:
    """Application configuration."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./training_analytics.db")

    # Analysis windows
    ANALYSIS_WINDOW_DAYS: int = int(os.getenv("ANALYSIS_WINDOW_DAYS", "30"))
    WEEKLY_WINDOW_DAYS: int = int(os.getenv("WEEKLY_WINDOW_DAYS", "7"))
    STALENESS_HOURS: float = float(os.getenv("STALENESS_HOURS", "24"))
    RECENT_PR_LIMIT: int = int(os.getenv("RECENT_PR_LIMIT", "5"))

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    thresholds: AnalysisThresholds = AnalysisThresholds()


config = Config()
