"""Configuration management"""
import os
from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Calendar - all day/week boundaries use this IANA timezone
GROW_TIMEZONE: str = os.getenv("GROW_TIMEZONE", "UTC")

# Undo snackbar window
UNDO_WINDOW_SECONDS: int = int(os.getenv("UNDO_WINDOW_SECONDS", "10"))

# Rewards
PR_BONUS_EXP: int = int(os.getenv("PR_BONUS_EXP", "50"))
QUEST_MULTIPLIER_STEP: float = float(os.getenv("QUEST_MULTIPLIER_STEP", "0.01"))
PERM_MULTIPLIER_CAP: float = float(os.getenv("PERM_MULTIPLIER_CAP", "0.10"))
DEFAULT_QUEST_TARGET: int = int(os.getenv("DEFAULT_QUEST_TARGET", "3"))

# Penalties
IRON_WILL_WEEKLY_USES: int = int(os.getenv("IRON_WILL_WEEKLY_USES", "2"))
DEBUFF_DURATION_HOURS: int = int(os.getenv("DEBUFF_DURATION_HOURS", "24"))
DEBUFF_EXP_REDUCTION: float = float(os.getenv("DEBUFF_EXP_REDUCTION", "0.05"))

# Monitoring
ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "true").lower() == "true"


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(f"LOG_LEVEL must be a logging level name, got {LOG_LEVEL!r}")
    if UNDO_WINDOW_SECONDS <= 0:
        raise ValueError("UNDO_WINDOW_SECONDS must be positive")
    if PR_BONUS_EXP < 0:
        raise ValueError("PR_BONUS_EXP cannot be negative")
    if not 0 <= PERM_MULTIPLIER_CAP <= 1:
        raise ValueError("PERM_MULTIPLIER_CAP must be between 0 and 1")
    if IRON_WILL_WEEKLY_USES < 0:
        raise ValueError("IRON_WILL_WEEKLY_USES cannot be negative")
    if DEFAULT_QUEST_TARGET < 1:
        raise ValueError("DEFAULT_QUEST_TARGET must be at least 1")
    from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
    try:
        ZoneInfo(GROW_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"GROW_TIMEZONE is not a known timezone: {GROW_TIMEZONE!r}") from e
