"""
Unit Tests for permission and signature helpers
"""
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace

from myteacher.core.exceptions import ForbiddenError
from myteacher.models.signature import SignatureRole, SignatureStatus
from myteacher.models.user import UserRole
from myteacher.modules.auth.permissions import effective_permissions, has_permission, require_permission
from myteacher.services.review_service import in_lead_window
from myteacher.services.signature_service import all_required_signed, client_ip, roles_summary


def staff(role, **flags):
    permission = SimpleNamespace(**flags) if flags else None
    return SimpleNamespace(id="u1", role=role, permission=permission)


class TestEffectivePermissions:

    def test_admin_has_everything(self):
        assert all(effective_permissions(staff(UserRole.ADMIN)).values())

    def test_teacher_defaults(self):
        perms = effective_permissions(staff(UserRole.TEACHER))

        assert perms["can_create_plans"] is True
        assert perms["can_update_plans"] is True
        assert perms["can_read_all"] is False
        assert perms["can_manage_docs"] is False

    def test_explicit_grant(self):
        user = staff(UserRole.CASE_MANAGER, can_read_all=True, can_create_plans=False)

        perms = effective_permissions(user)

        assert perms["can_read_all"] is True
        # Role defaults win over a stored False
        assert perms["can_create_plans"] is True

    def test_require_permission(self):
        user = staff(UserRole.TEACHER)

        assert has_permission(user, "can_update_plans") is True
        with pytest.raises(ForbiddenError):
            require_permission(user, "can_manage_users")


class TestClientIp:

    def test_forwarded_header_first_hop(self):
        assert client_ip({"x-forwarded-for": " 203.0.113.7 , 10.0.0.1"}, "127.0.0.1") == "203.0.113.7"

    def test_socket_peer(self):
        assert client_ip({}, "198.51.100.4") == "198.51.100.4"

    def test_unknown(self):
        assert client_ip({}, None) == "unknown"


def packet_with(required, signed=(), declined=()):
    records = [SimpleNamespace(id=f"r-{r}", role=SignatureRole(r), status=SignatureStatus.SIGNED, signer_name=None,
                               signed_at=None) for r in signed]
    records += [SimpleNamespace(id=f"r-{r}", role=SignatureRole(r), status=SignatureStatus.DECLINED, signer_name=None,
                                signed_at=None) for r in declined]
    return SimpleNamespace(required_roles=list(required), records=records)


class TestAllRequiredSigned:

    def test_every_role_signed(self):
        packet = packet_with(["CASE_MANAGER", "PARENT_GUARDIAN"], signed=["CASE_MANAGER", "PARENT_GUARDIAN"])

        assert all_required_signed(packet) is True

    def test_declined_role_is_not_signed(self):
        packet = packet_with(["CASE_MANAGER", "PARENT_GUARDIAN"], signed=["CASE_MANAGER"], declined=["PARENT_GUARDIAN"])

        assert all_required_signed(packet) is False

    def test_extra_signatures_do_not_matter(self):
        packet = packet_with(["CASE_MANAGER"], signed=["CASE_MANAGER", "STUDENT"])

        assert all_required_signed(packet) is True

    def test_roles_summary_follows_required_order(self):
        packet = packet_with(["PARENT_GUARDIAN", "CASE_MANAGER"], signed=["CASE_MANAGER"])

        assert [s["role"] for s in roles_summary(packet)] == ["PARENT_GUARDIAN", "CASE_MANAGER"]


class TestLeadWindow:
    NOW = datetime(2026, 10, 1, 9, 0)

    def test_outside_window(self):
        assert in_lead_window(self.NOW + timedelta(days=31), 30, now=self.NOW) is False

    def test_window_boundary(self):
        assert in_lead_window(self.NOW + timedelta(days=30), 30, now=self.NOW) is True

    def test_past_due(self):
        assert in_lead_window(self.NOW - timedelta(days=2), 30, now=self.NOW) is True
