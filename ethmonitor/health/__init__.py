"""Health subsystem — shared snapshot, staleness evaluation, scheduler."""

from .staleness import evaluate_status, merge_countdown, refresh_statuses
from .state import HealthRecord, HealthSnapshot, Status
