import uuid

import pytest
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError

from app.models.change_log import ChangeAction
from app.models.config import ConfigOverride
from app.models.hierarchy import OwnerType
from app.schemas.config import (
    BlocklistPatternCreate,
    BlocklistPatternUpdate,
    CodedConfigCreate,
    CommunicationTypeCreate,
    ConfigEntityUpdate,
    CustomerStatusCreate,
    CustomerStatusUpdate,
    InactivationReasonCreate,
    ScopeRef,
)
from app.services.change_log import ChangeLogs
from app.services.config_entity import ConfigEntities
from app.services.config_override import ConfigOverrides


class TestConfigEntitiesParse:
    def test_parse_valid_body(self):
        payload = ConfigEntities.parse(
            CustomerStatusCreate, {"code": "VIP", "name_en": "VIP", "color": "#FF0000"}
        )
        assert payload.color == "#FF0000"

    def test_parse_invalid_body(self):
        with pytest.raises(RequestValidationError):
            ConfigEntities.parse(CustomerStatusCreate, {"code": "VIP", "color": "red"})


class TestConfigEntitiesCreate:
    def test_create_tenant_entry(self, make_status):
        status = make_status("VIP", color="#00FF00")
        assert status.owner_type == OwnerType.tenant
        assert status.owner_id is None
        assert status.color == "#00FF00"
        assert status.version == 1
        assert status.is_system is False

    def test_tenant_owner_id_is_dropped(self, db_session):
        payload = CustomerStatusCreate(
            code="VIP", name_en="VIP", owner_type="tenant", owner_id=uuid.uuid4()
        )
        status = ConfigEntities.create(db_session, "customer-status", payload)
        assert status.owner_id is None

    def test_create_subsidiary_entry(self, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP", owner=subsidiary)
        assert status.owner_type == OwnerType.subsidiary
        assert status.owner_id == subsidiary.id

    def test_create_for_unknown_owner(self, db_session):
        payload = CustomerStatusCreate(
            code="VIP", name_en="VIP", owner_type="talent", owner_id=uuid.uuid4()
        )
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.create(db_session, "customer-status", payload)
        assert exc.value.status_code == 404

    def test_create_without_owner_id(self, db_session):
        payload = CustomerStatusCreate(code="VIP", name_en="VIP", owner_type="subsidiary")
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.create(db_session, "customer-status", payload)
        assert exc.value.detail["code"] == "INVALID_SCOPE"

    def test_duplicate_code(self, make_status):
        make_status("VIP")
        with pytest.raises(HTTPException) as exc:
            make_status("VIP")
        assert exc.value.detail["code"] == "CODE_ALREADY_EXISTS"

    def test_unknown_entity_type(self, db_session):
        payload = CodedConfigCreate(code="X", name_en="X")
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.create(db_session, "no-such-type", payload)
        assert exc.value.status_code == 404

    def test_create_with_parent(self, db_session):
        category = ConfigEntities.create(
            db_session,
            "channel-category",
            CodedConfigCreate(code="CHAT", name_en="Chat"),
        )
        comm_type = ConfigEntities.create(
            db_session,
            "communication-type",
            CommunicationTypeCreate(
                code="LINE", name_en="Line", channel_category_id=category.id
            ),
        )
        assert comm_type.channel_category_id == category.id

    def test_create_with_unknown_parent(self, db_session):
        payload = CommunicationTypeCreate(
            code="LINE", name_en="Line", channel_category_id=uuid.uuid4()
        )
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.create(db_session, "communication-type", payload)
        assert exc.value.status_code == 404

    def test_create_blocklist_pattern(self, make_pattern):
        pattern = make_pattern("spam.example.com", pattern_type="domain")
        assert pattern.severity.value == "medium"
        assert pattern.action.value == "reject"
        assert pattern.replacement == "[链接已移除]"

    def test_invalid_regex(self, db_session):
        payload = BlocklistPatternCreate(
            pattern="([", pattern_type="url_regex", name_en="Broken"
        )
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.create(db_session, "external-blocklist-pattern", payload)
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "VALIDATION_FAILED"

    def test_create_records_change_log(self, db_session, make_status, actor_id):
        status = make_status("VIP")
        entries = ChangeLogs.list(
            db_session, "customer-status", str(status.id), ChangeAction.create, 10, 0
        )
        assert len(entries) == 1
        assert entries[0].object_name == "VIP"
        assert entries[0].operator_id == actor_id


class TestConfigEntitiesUpdate:
    def test_update(self, db_session, make_status):
        status = make_status("VIP")
        updated = ConfigEntities.update(
            db_session,
            "customer-status",
            status.id,
            CustomerStatusUpdate(name_ja="ブイアイピー", inherit=False, version=1),
        )
        assert updated.name_ja == "ブイアイピー"
        assert updated.inherit is False
        assert updated.version == 2

    def test_update_skips_null_for_required_columns(self, db_session, make_status):
        status = make_status("VIP", name_en="Very Important")
        updated = ConfigEntities.update(
            db_session,
            "customer-status",
            status.id,
            CustomerStatusUpdate(name_en=None, color=None, version=1),
        )
        assert updated.name_en == "Very Important"
        assert updated.color is None

    def test_update_stale_version(self, db_session, make_status):
        status = make_status("VIP")
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.update(
                db_session,
                "customer-status",
                status.id,
                ConfigEntityUpdate(name_en="X", version=5),
            )
        assert exc.value.status_code == 409

    def test_update_system_entry(self, db_session, make_status):
        status = make_status("VIP")
        status.is_system = True
        db_session.flush()
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.update(
                db_session,
                "customer-status",
                status.id,
                ConfigEntityUpdate(name_en="X", version=1),
            )
        assert exc.value.detail["code"] == "CONFIG_SYSTEM_IMMUTABLE"

    def test_update_pattern_to_invalid_regex(self, db_session, make_pattern):
        pattern = make_pattern("spam", pattern_type="keyword")
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.update(
                db_session,
                "external-blocklist-pattern",
                pattern.id,
                BlocklistPatternUpdate(pattern="(", pattern_type="url_regex", version=1),
            )
        assert exc.value.status_code == 400

    def test_forcing_clears_overrides(self, db_session, make_subsidiary, make_status):
        a = make_subsidiary("A")
        b = make_subsidiary("B")
        status = make_status("VIP")
        for scope in (a, b):
            ConfigOverrides.disable(
                db_session, "customer-status", status.id, OwnerType.subsidiary, scope.id
            )

        ConfigEntities.update(
            db_session,
            "customer-status",
            status.id,
            CustomerStatusUpdate(is_force_use=True, version=1),
        )

        assert db_session.query(ConfigOverride).count() == 0
        assert not ConfigOverrides.is_disabled(
            db_session, "customer-status", status.id, OwnerType.subsidiary, a.id
        )

    def test_unrelated_update_keeps_overrides(
        self, db_session, make_subsidiary, make_status
    ):
        a = make_subsidiary("A")
        status = make_status("VIP")
        ConfigOverrides.disable(
            db_session, "customer-status", status.id, OwnerType.subsidiary, a.id
        )
        ConfigEntities.update(
            db_session,
            "customer-status",
            status.id,
            CustomerStatusUpdate(name_en="Renamed", version=1),
        )
        assert ConfigOverrides.is_disabled(
            db_session, "customer-status", status.id, OwnerType.subsidiary, a.id
        )


class TestConfigEntitiesDelete:
    def test_delete_removes_overrides(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP")
        ConfigOverrides.disable(
            db_session, "customer-status", status.id, OwnerType.subsidiary, subsidiary.id
        )

        ConfigEntities.delete(db_session, "customer-status", status.id)

        with pytest.raises(HTTPException):
            ConfigEntities.get(db_session, "customer-status", status.id)
        assert db_session.query(ConfigOverride).count() == 0

    def test_delete_referenced_parent(self, db_session):
        category = ConfigEntities.create(
            db_session, "reason-category", CodedConfigCreate(code="HR", name_en="HR")
        )
        ConfigEntities.create(
            db_session,
            "inactivation-reason",
            InactivationReasonCreate(
                code="QUIT", name_en="Quit", reason_category_id=category.id
            ),
        )
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.delete(db_session, "reason-category", category.id)
        assert exc.value.detail["code"] == "CONFIG_IN_USE"

    def test_delete_system_entry(self, db_session, make_status):
        status = make_status("VIP")
        status.is_system = True
        db_session.flush()
        with pytest.raises(HTTPException) as exc:
            ConfigEntities.delete(db_session, "customer-status", status.id)
        assert exc.value.detail["code"] == "CONFIG_SYSTEM_IMMUTABLE"


class TestConfigEntitiesBatchToggle:
    def test_toggle_counts_changed_rows(self, db_session, make_status):
        first = make_status("VIP")
        second = make_status("NEW", is_active=False)
        updated = ConfigEntities.batch_toggle(
            db_session, "customer-status", [first.id, second.id], False
        )
        assert updated == 1
        assert first.is_active is False
        assert first.version == 2
        assert second.version == 1

    def test_toggle_ignores_unknown_ids(self, db_session):
        assert (
            ConfigEntities.batch_toggle(
                db_session, "customer-status", [uuid.uuid4()], True
            )
            == 0
        )


class TestConfigEntitiesScopeToggles:
    def test_disable_and_enable_in_scope(self, db_session, make_subsidiary, make_status):
        subsidiary = make_subsidiary("A")
        status = make_status("VIP")
        scope = ScopeRef(scope_type="subsidiary", scope_id=subsidiary.id)

        result = ConfigEntities.disable_in_scope(
            db_session, "customer-status", status.id, scope
        )
        assert result == {"id": status.id, "disabled": True}

        result = ConfigEntities.enable_in_scope(
            db_session, "customer-status", str(status.id), scope
        )
        assert result == {"id": status.id, "enabled": True}

        actions = {
            entry.action
            for entry in ChangeLogs.list(
                db_session, "customer-status", str(status.id), None, 10, 0
            )
        }
        assert {ChangeAction.disable, ChangeAction.enable} <= actions
