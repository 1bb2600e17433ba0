"""planwarden - consistency, health validation and self-repair for .planning/ trees."""

from .errors import DataError, NotFoundError, PlanwardenError, UsageError
from .models import (
    ConsistencyReport,
    Finding,
    FindingKind,
    HealthReport,
    HealthStatus,
    ProjectConfig,
    RepairAction,
    Severity,
)
from .workflow import ValidationManager
from .workspace import PlanningWorkspace

__version__ = "0.1.0"

__all__ = [
    "ConsistencyReport",
    "DataError",
    "Finding",
    "FindingKind",
    "HealthReport",
    "HealthStatus",
    "NotFoundError",
    "PlanningWorkspace",
    "PlanwardenError",
    "ProjectConfig",
    "RepairAction",
    "Severity",
    "UsageError",
    "ValidationManager",
]
