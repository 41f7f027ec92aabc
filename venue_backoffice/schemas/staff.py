# venue_backoffice/schemas/staff.py
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from venue_backoffice.database.models import STAFF_ROLES, UserRole


class StaffCreate(BaseModel):
    """Payload for provisioning a staff account.

    Accepts both the camelCase keys sent by the admin screens and the
    snake_case keys sent by the manager screens.
    """
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole
    venue_id: str = Field(min_length=1, validation_alias=AliasChoices("venue_id", "venueId"))
    full_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("full_name", "fullName", "displayName")
    )
    phone_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("phone_number", "phone")
    )

    @field_validator("role")
    @classmethod
    def role_must_be_staff(cls, value: UserRole) -> UserRole:
        if value not in STAFF_ROLES:
            raise ValueError("Invalid role specified.")
        return value

    @field_validator("full_name", "phone_number")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class BartenderCreate(StaffCreate):
    role: UserRole = UserRole.BARTENDER

    @field_validator("role")
    @classmethod
    def role_must_be_bartender(cls, value: UserRole) -> UserRole:
        if value != UserRole.BARTENDER:
            raise ValueError("Invalid role: only bartender is allowed")
        return value


class AccountRef(BaseModel):
    user_id: str = Field(min_length=1, validation_alias=AliasChoices("user_id", "userId"))


class ManagerAssignment(BaseModel):
    venue_id: str = Field(min_length=1, validation_alias=AliasChoices("venue_id", "venueId"))
    manager_user_id: str = Field(
        min_length=1, validation_alias=AliasChoices("manager_user_id", "managerUserId", "account_id")
    )


class ManagerAssignmentRequest(BaseModel):
    """Body of the admin venue screen, the venue id comes from the path."""
    manager_user_id: str = Field(
        min_length=1, validation_alias=AliasChoices("manager_user_id", "managerUserId", "account_id")
    )
