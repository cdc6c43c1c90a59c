from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_TITLE = "New Task"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class ParsedIntent:
    title: str = DEFAULT_TITLE
    description: str | None = None
    due_date: datetime | None = None
    priority: Priority = Priority.MEDIUM
    labels: list[str] = field(default_factory=list)
    due_time_explicit: bool = False
    raw_text: str = ""
