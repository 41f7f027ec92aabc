import pytest

from venue_backoffice.config import Config
from venue_backoffice.schemas import parse_payload
from venue_backoffice.schemas.staff import AccountRef, ManagerAssignment, StaffCreate
from venue_backoffice.services.errors import CompensationFailed, ValidationFailed


class TestConfig:
    def test_missing_critical_value(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)

        with pytest.raises(ValueError, match="SUPABASE_SERVICE_KEY"):
            Config()

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PROVISIONING_STALE_AFTER", raising=False)
        monkeypatch.delenv("PRODUCT_IMAGES_BUCKET", raising=False)
        monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.test/")

        config = Config()

        assert config.SUPABASE_URL == "https://project.supabase.test"
        assert config.PROVISIONING_STALE_AFTER == 900
        assert config.PRODUCT_IMAGES_BUCKET == "product-images"

    def test_negative_stale_after(self, monkeypatch):
        monkeypatch.setenv("PROVISIONING_STALE_AFTER", "-5")

        config = Config()

        with pytest.raises(ValueError):
            config.PROVISIONING_STALE_AFTER
        assert config.validate() is False


class TestStaffPayloads:
    def test_accepts_camel_and_snake_case(self):
        camel = parse_payload(StaffCreate, {
            "email": "a@b.com", "password": "secret1", "role": "manager", "venueId": "V1", "displayName": "Ana",
        })
        snake = parse_payload(StaffCreate, {
            "email": "a@b.com", "password": "secret1", "role": "manager", "venue_id": "V1", "full_name": "Ana",
        })

        assert camel == snake

    def test_blank_optional_fields_are_dropped(self):
        payload = parse_payload(StaffCreate, {
            "email": "a@b.com", "password": "secret1", "role": "bartender", "venueId": "V1", "phone": "  ",
        })

        assert payload.phone_number is None

    def test_invalid_email(self):
        with pytest.raises(ValidationFailed, match="email"):
            parse_payload(StaffCreate, {"email": "nope", "password": "secret1", "role": "bartender", "venueId": "V1"})

    def test_body_must_be_object(self):
        with pytest.raises(ValidationFailed, match="JSON object"):
            parse_payload(AccountRef, ["user"])

    def test_manager_assignment_aliases(self):
        payload = parse_payload(ManagerAssignment, {"venueId": "V1", "managerUserId": "U1"})

        assert (payload.venue_id, payload.manager_user_id) == ("V1", "U1")


def test_compensation_failure_payload():
    error = CompensationFailed("Profile Update Error: DB_ERROR", compensation_error="timeout")

    assert error.to_payload() == {
        "success": False,
        "message": "Profile Update Error: DB_ERROR",
        "error": "COMPENSATION_FAILED",
        "compensation_error": "timeout",
    }
    assert error.status_code == 500
