# venue_backoffice/database/models.py

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    BARTENDER = "bartender"


# Roles a provisioning workflow may hand out
STAFF_ROLES = (UserRole.MANAGER, UserRole.BARTENDER)


class VenueState(str, Enum):
    ALBANIA = "Albania"
    BOSNIA_AND_HERZEGOVINA = "Bosnia and Herzegovina"
    BULGARIA = "Bulgaria"
    CROATIA = "Croatia"
    GREECE = "Greece"
    KOSOVO = "Kosovo"
    MONTENEGRO = "Montenegro"
    NORTH_MACEDONIA = "North Macedonia"
    ROMANIA = "Romania"
    SERBIA = "Serbia"
    SLOVENIA = "Slovenia"


class ProvisioningStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"


TABLES = {
    'PROFILES': 'profiles',
    'VENUES': 'venues',
    'CATEGORIES': 'categories',
    'PRODUCTS': 'products',
    'PROVISIONING': 'staff_provisioning',
}

STAFF_PROFILES_RPC = 'get_staff_profiles_with_email'
