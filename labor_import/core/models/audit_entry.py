"""
AuditEntry model: generic audit-log append record.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """
    Entry in the application-wide audit log.

    Attributes:
        log_id: Auto-increment primary key
        actor: Who performed the action
        action: e.g. "import", "undo_import"
        entity_type: e.g. "labor_actuals", "labor_import"
        entity_id: Affected entity key
        changes: JSON payload describing the change
        created_at: When the action happened
    """

    log_id: int | None = None
    actor: str
    action: str
    entity_type: str
    entity_id: str
    changes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        json_schema_extra = {
            "example": {
                "log_id": 1,
                "actor": "user-42",
                "action": "import",
                "entity_type": "labor_actuals",
                "entity_id": "6f1c2a7e-8a55-4f7c-9c1e-5b0f5b8f2d11",
                "changes": {"file_name": "week3.xlsx", "imported": 10},
            }
        }
