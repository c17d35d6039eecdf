"""Contact directory lookups consumed by the calendar module."""

from rhythm.modules.crm.models import ContactSnapshot, GoalSummary, NoteSummary, TaskSummary
from rhythm.modules.crm.service import CrmDirectory

__all__ = ["ContactSnapshot", "CrmDirectory", "GoalSummary", "NoteSummary", "TaskSummary"]
