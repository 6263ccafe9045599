from .config import AppSettings, RunMode
from .schedule_config import (
    ScheduleConfig,
    ScheduleConfigUpdate,
    apply_schedule_update,
    load_schedule_config,
)
from .types import EligibleHosts

__all__ = [
    "AppSettings",
    "EligibleHosts",
    "RunMode",
    "ScheduleConfig",
    "ScheduleConfigUpdate",
    "apply_schedule_update",
    "load_schedule_config",
]
