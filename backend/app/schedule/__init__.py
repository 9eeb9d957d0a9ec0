"""Schedule module: speaker/hall/slot assignments."""

from .schemas import ScheduleCreate, ScheduleRow, ScheduleUpdate
from .service import SchedulingEngine

__all__ = ["ScheduleCreate", "ScheduleRow", "ScheduleUpdate", "SchedulingEngine"]
