"""Tests for permission and property change detection."""

import pytest

from playsync.diff import comparable_perms, perms_changed, property_changes
from playsync.errors import ValidationError
from playsync.models import AccessControl


CURRENT = AccessControl(owner="admin", read=["admin"], write=["admin"])


class TestPermsChanged:
    def test_same_principals(self):
        assert perms_changed({"perms.read": ["admin"], "perms.write": ["admin"]}, CURRENT) is False

    def test_same_principals_as_strings(self):
        assert perms_changed({"perms.read": "admin", "perms.write": "admin"}, CURRENT) is False

    def test_new_leading_principal(self):
        assert perms_changed({"perms.read": ["admin"], "perms.write": ["*", "admin"]}, CURRENT) is True

    def test_only_leading_principal_compared(self):
        assert perms_changed({"perms.read": "admin,power", "perms.write": "admin"}, CURRENT) is False

    def test_no_payload(self):
        assert perms_changed(None, CURRENT) is False
        assert perms_changed({}, CURRENT) is False

    def test_no_current_acl(self):
        assert perms_changed({"perms.read": "admin"}, None) is True

    def test_comparable_perms(self):
        assert comparable_perms({"perms.read": "*,admin"}) == {"read": "*", "write": None}

    @pytest.mark.parametrize("payload", [{"sharing": "everyone"}, {"perms": "admin"}, ["admin"]])
    def test_malformed_payload(self, payload):
        with pytest.raises(ValidationError):
            perms_changed(payload, CURRENT)


class TestPropertyChanges:
    def test_no_changes(self):
        current = {"search": "index=main", "disabled": False, "cron_schedule": "* * * * *"}
        assert property_changes({"name": "p", "search": "index=main"}, current) == {}

    def test_name_ignored(self):
        assert property_changes({"name": "renamed"}, {}) == {}

    def test_changed_and_new_keys(self):
        current = {"search": "index=main"}
        changes = property_changes({"search": "index=new", "description": "d"}, current)
        assert changes == {"search": "index=new", "description": "d"}

    def test_compares_by_value(self):
        current = {"actions": ["email"]}
        assert property_changes({"actions": ["email"]}, current) == {}
