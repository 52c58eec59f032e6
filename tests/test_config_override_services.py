import uuid

import pytest
from fastapi import HTTPException

from app.models.config import ConfigOverride
from app.models.hierarchy import OwnerType
from app.services.config_override import TENANT_OWNER_ID, ConfigOverrides, owner_key


class TestOwnerKey:
    def test_tenant_maps_to_zero_uuid(self):
        assert owner_key(OwnerType.tenant, None) == TENANT_OWNER_ID
        assert owner_key(OwnerType.tenant, uuid.uuid4()) == TENANT_OWNER_ID

    def test_scope_id_kept(self):
        scope_id = uuid.uuid4()
        assert owner_key(OwnerType.subsidiary, str(scope_id)) == scope_id


class TestConfigOverridesDisable:
    def test_disable_inherited_entry(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP")

        override = ConfigOverrides.disable(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )

        assert override.is_disabled is True
        assert override.owner_id == subsidiary.id
        assert ConfigOverrides.is_disabled(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )
        assert ConfigOverrides.get_disabled_ids(
            db_session, "customer-status", OwnerType.subsidiary, subsidiary.id
        ) == {status.id}

    def test_disable_is_idempotent(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP")
        for _ in range(2):
            ConfigOverrides.disable(
                db_session,
                "customer-status",
                status.id,
                OwnerType.subsidiary,
                subsidiary.id,
            )
        assert db_session.query(ConfigOverride).count() == 1

    def test_disable_from_talent(
        self, db_session, make_subsidiary, make_talent, make_status
    ):
        subsidiary = make_subsidiary("A")
        talent = make_talent("star", subsidiary=subsidiary)
        status = make_status("VIP", owner=subsidiary)
        ConfigOverrides.disable(
            db_session, "customer-status", status.id, OwnerType.talent, talent.id
        )
        assert not ConfigOverrides.is_disabled(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )

    def test_disable_own_entry(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP", owner=subsidiary)
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session,
                "customer-status",
                status.id,
                OwnerType.subsidiary,
                subsidiary.id,
            )
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "CONFIG_NOT_INHERITED"

    def test_disable_tenant_entry_at_tenant(self, db_session, make_status):
        status = make_status("VIP")
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session, "customer-status", status.id, OwnerType.tenant, None
            )
        assert exc.value.detail["code"] == "CONFIG_NOT_INHERITED"

    def test_disable_entry_from_other_branch(
        self, db_session, make_subsidiary, make_status
    ):
        a = make_subsidiary("A")
        b = make_subsidiary("B")
        status = make_status("VIP", owner=b)
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session, "customer-status", status.id, OwnerType.subsidiary, a.id
            )
        assert exc.value.detail["code"] == "CONFIG_NOT_IN_SCOPE"

    def test_disable_non_inherited_entry(
        self, db_session, make_subsidiary, make_status
    ):
        subsidiary = make_subsidiary("A")
        status = make_status("LOCAL", inherit=False)
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session,
                "customer-status",
                status.id,
                OwnerType.subsidiary,
                subsidiary.id,
            )
        assert exc.value.detail["code"] == "CONFIG_NOT_IN_SCOPE"
        assert db_session.query(ConfigOverride).count() == 0

    def test_disable_force_use(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP", is_force_use=True)
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session,
                "customer-status",
                status.id,
                OwnerType.subsidiary,
                subsidiary.id,
            )
        assert exc.value.detail["code"] == "CONFIG_FORCE_USE"

    def test_disable_unknown_scope(self, db_session, make_status):
        status = make_status("VIP")
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session,
                "customer-status",
                status.id,
                OwnerType.subsidiary,
                uuid.uuid4(),
            )
        assert exc.value.status_code == 404

    def test_disable_unknown_entity(self, db_session, make_subsidiary):
        subsidiary = make_subsidiary("A")
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.disable(
                db_session,
                "customer-status",
                uuid.uuid4(),
                OwnerType.subsidiary,
                subsidiary.id,
            )
        assert exc.value.status_code == 404


class TestConfigOverridesEnable:
    def test_enable_removes_override(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP")
        ConfigOverrides.disable(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )
        ConfigOverrides.enable(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )
        assert not ConfigOverrides.is_disabled(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )

    def test_enable_without_override(self, db_session, make_subsidiary):
        subsidiary = make_subsidiary("A")
        ConfigOverrides.enable(
            db_session,
            "customer-status",
            uuid.uuid4(),
            OwnerType.subsidiary,
            subsidiary.id,
        )
        assert db_session.query(ConfigOverride).count() == 0

    def test_enable_unknown_type(self, db_session):
        with pytest.raises(HTTPException) as exc:
            ConfigOverrides.enable(
                db_session, "no-such-type", uuid.uuid4(), OwnerType.tenant, None
            )
        assert exc.value.status_code == 404

    def test_delete_for_entity(self, db_session, make_subsidiary, make_status):
        a = make_subsidiary("A")
        b = make_subsidiary("B")
        status = make_status("VIP")
        for scope in (a, b):
            ConfigOverrides.disable(
                db_session, "customer-status", status.id, OwnerType.subsidiary, scope.id
            )
        assert ConfigOverrides.delete_for_entity(
            db_session, "customer-status", status.id
        ) == 2
