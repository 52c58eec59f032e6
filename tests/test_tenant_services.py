from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.db import TENANT_SCHEMA
from app.schemas.tenant import TenantCreate
from app.services.tenant import Tenants, tenant_tables


class TestTenantTables:
    def test_only_tenant_schema_tables(self):
        names = {table.name for table in tenant_tables()}
        assert "tenants" not in names
        assert {"subsidiaries", "talents", "config_overrides", "change_logs"} <= names
        assert all(table.schema == TENANT_SCHEMA for table in tenant_tables())


class TestTenantsCreate:
    @patch("app.services.tenant.provision_tenant_schema")
    def test_create_provisions_schema(self, mock_provision, db_session):
        tenant = Tenants.create(db_session, TenantCreate(code="globex", name="Globex"))
        assert tenant.schema_name == "tenant_globex"
        assert tenant.is_active is True
        mock_provision.assert_called_once_with("tenant_globex")

    @patch("app.services.tenant.provision_tenant_schema")
    def test_duplicate_code(self, mock_provision, db_session, tenant):
        with pytest.raises(HTTPException) as exc:
            Tenants.create(db_session, TenantCreate(code=tenant.code, name="Again"))
        assert exc.value.detail["code"] == "CODE_ALREADY_EXISTS"
        mock_provision.assert_not_called()


class TestTenantsQueries:
    def test_get_by_code(self, db_session, tenant):
        assert Tenants.get_by_code(db_session, "acme").id == tenant.id

    def test_inactive_tenant_hidden(self, db_session, tenant):
        tenant.is_active = False
        db_session.flush()
        with pytest.raises(HTTPException) as exc:
            Tenants.get_by_code(db_session, "acme")
        assert exc.value.status_code == 404

    def test_list(self, db_session, tenant):
        items = Tenants.list(db_session, True, "code", "asc", 10, 0)
        assert [item.code for item in items] == ["acme"]
