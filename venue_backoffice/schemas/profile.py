from typing import Any, Dict, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from venue_backoffice.database.models import UserRole


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: UserRole
    venue_id: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> Optional["ProfileResponse"]:
        if not row:
            return None
        return cls.model_validate(row)
