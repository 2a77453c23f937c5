"""Task accumulation and user data validation."""

from .manager import TaskManager, TaskState, generate_task_id
from .validation import validate_user_data, validate_value

__all__ = [
	"TaskManager",
	"TaskState",
	"generate_task_id",
	"validate_user_data",
	"validate_value",
]
