"""Tests for taskflow.core.permissions."""

import pytest

from taskflow.core.permissions import can_access, capability_matrix, visible_sections
from taskflow.data.models import ROLES


class TestCanAccess:
    @pytest.mark.parametrize("role", ROLES)
    def test_everyone_views_calendar(self, role):
        assert can_access(role, "View Calendar") is True

    def test_guest_cannot_create(self):
        assert can_access("guest", "Create Events") is False
        assert can_access("staff", "Create Events") is True

    def test_settings_admin_only(self):
        assert can_access("admin", "Manage Settings") is True
        assert can_access("manager", "Manage Settings") is False

    def test_unknown_feature_or_role(self):
        assert can_access("admin", "Launch Rockets") is False
        assert can_access("owner", "View Calendar") is False


class TestVisibleSections:
    @pytest.mark.parametrize("role", ["admin", "manager"])
    def test_admin_sections(self, role):
        assert visible_sections(role) == ["Calendar", "Tasks", "Users", "Settings"]

    @pytest.mark.parametrize("role", ["staff", "guest"])
    def test_basic_sections(self, role):
        assert visible_sections(role) == ["Calendar", "Tasks"]


class TestCapabilityMatrix:
    def test_rows_follow_role_order(self):
        rows = dict(capability_matrix())
        assert rows["Manage Users"] == [True, True, False, False]
        assert rows["View Calendar"] == [True] * len(ROLES)
        assert len(rows) == 5
