"""
Tests for the firmware set manager.

Covers the ordered validation of create/update/remove, transactional
rollback when a membership write fails part way, and filtered listing.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from asset_metadata.db.models import (
    AttributeModel,
    ComponentFirmwareSetMapModel,
    ComponentFirmwareSetModel,
)
from asset_metadata.errors import ConflictError, NotFoundError, ValidationError
from asset_metadata.schemas.attributes import AttributeFilter, Attributes
from asset_metadata.schemas.firmware_set import ComponentFirmwareSetPayload
from asset_metadata.schemas.pagination import PaginationParams
from asset_metadata.schemas.params import ComponentFirmwareSetListParams
from asset_metadata.store.firmware_sets import (
    FirmwareSetManager,
    validate_create_request,
)

LABELS = "sh.hollow.firmware_set.labels"


@pytest.fixture
def manager(db_session, clock):
    return FirmwareSetManager(db_session, clock)


def payload(name="foobar", firmware=(), **kwargs):
    return ComponentFirmwareSetPayload(
        name=name, component_firmware_uuids=list(firmware), **kwargs
    )


def counts(db_session):
    return (
        db_session.query(ComponentFirmwareSetModel).count(),
        db_session.query(ComponentFirmwareSetMapModel).count(),
    )


class TestCreate:
    def test_create_with_members_and_attributes(self, manager, make_firmware):
        firmware = make_firmware(2)
        set_id = manager.create(
            payload(
                firmware=firmware,
                metadata={"release": "2024-Q1"},
                attributes=[Attributes(namespace=LABELS, data={"model": "r640"})],
            )
        )

        result = manager.get(set_id)
        assert result.name == "foobar"
        assert result.metadata == {"release": "2024-Q1"}
        assert sorted(f.uuid for f in result.component_firmware) == sorted(firmware)
        assert result.attributes[0].namespace == LABELS
        assert result.attributes[0].data == {"model": "r640"}

    def test_name_is_required(self, manager, make_firmware):
        with pytest.raises(ValidationError) as excinfo:
            manager.create(payload(name="", firmware=make_firmware()))
        assert excinfo.value.message == "required attribute not set: Name"

    def test_firmware_is_required(self, manager):
        with pytest.raises(ValidationError) as excinfo:
            manager.create(payload())
        assert "expected one or more firmware UUIDs" in excinfo.value.message

    def test_invalid_uuid(self, manager, db_session):
        with pytest.raises(ValidationError) as excinfo:
            manager.create(payload(firmware=["d825bbeb-20fb-452e-9fe4-invalid"]))
        assert "invalid firmware UUID" in excinfo.value.message
        assert counts(db_session) == (0, 0)

    def test_duplicate_uuids_rejected_before_any_write(
        self, manager, db_session, make_firmware
    ):
        (firmware_id,) = make_firmware()
        with pytest.raises(ValidationError) as excinfo:
            manager.create(payload(firmware=[firmware_id, firmware_id]))
        assert "unique firmware versions" in excinfo.value.message
        assert counts(db_session) == (0, 0)

    def test_unknown_firmware(self, manager, db_session):
        missing = str(uuid.uuid4())
        with pytest.raises(ValidationError) as excinfo:
            manager.create(payload(firmware=[missing]))
        assert excinfo.value.message == f"firmware UUID does not exist: {missing}"
        assert counts(db_session) == (0, 0)

    def test_checks_run_in_order(self):
        # an empty name wins over a bad UUID list
        with pytest.raises(ValidationError) as excinfo:
            validate_create_request(payload(name="", firmware=["bogus", "bogus"]))
        assert "Name" in excinfo.value.message

        # a bad UUID wins over duplicates
        with pytest.raises(ValidationError) as excinfo:
            validate_create_request(payload(firmware=["bogus", "bogus"]))
        assert "invalid firmware UUID: bogus" == excinfo.value.message

    @pytest.mark.parametrize("fail_at", [1, 2, 3])
    def test_failed_membership_insert_rolls_back(
        self, manager, db_session, make_firmware, monkeypatch, fail_at
    ):
        firmware = make_firmware(3)
        original = manager._insert_membership
        calls = []

        def flaky_insert(set_id, firmware_id):
            calls.append(firmware_id)
            if len(calls) == fail_at:
                raise IntegrityError("INSERT", {}, Exception("boom"))
            original(set_id, firmware_id)

        monkeypatch.setattr(manager, "_insert_membership", flaky_insert)

        with pytest.raises(ConflictError):
            manager.create(payload(firmware=firmware))
        assert counts(db_session) == (0, 0)

    def test_non_storage_failure_also_rolls_back(
        self, manager, db_session, make_firmware, monkeypatch
    ):
        def broken_attributes(owner, items):
            raise RuntimeError("attribute writer exploded")

        monkeypatch.setattr(manager.attributes, "upsert_attributes", broken_attributes)

        with pytest.raises(RuntimeError):
            manager.create(payload(firmware=make_firmware(2)))
        assert counts(db_session) == (0, 0)


class TestUpdate:
    @pytest.fixture
    def firmware_set(self, manager, make_firmware):
        firmware = make_firmware(2)
        return manager.create(payload(name="r640", firmware=firmware)), firmware

    def test_nil_id(self, manager):
        with pytest.raises(ValidationError) as excinfo:
            manager.update("00000000-0000-0000-0000-000000000000", payload(name="x"))
        assert excinfo.value.message == "expected a valid firmware set ID, got none"

    def test_nil_payload_id_is_rejected(self, manager, firmware_set):
        set_id, _ = firmware_set
        with pytest.raises(ValidationError) as excinfo:
            manager.update(
                set_id,
                payload(name="x", uuid="00000000-0000-0000-0000-000000000000"),
            )
        assert excinfo.value.message == (
            "expected a valid firmware set ID in payload, got none"
        )

    def test_mismatched_payload_id_is_rejected(self, manager, firmware_set):
        set_id, _ = firmware_set
        other = str(uuid.uuid4())
        with pytest.raises(ValidationError) as excinfo:
            manager.update(set_id, payload(name="x", uuid=other))
        assert excinfo.value.message == (
            f"firmware set ID in payload does not match: {other}"
        )
        assert manager.get(set_id).name == "r640"

    def test_matching_payload_id_is_accepted(self, manager, firmware_set):
        set_id, _ = firmware_set
        manager.update(set_id, payload(name="renamed", uuid=set_id.upper()))
        assert manager.get(set_id).name == "renamed"

    def test_unknown_set(self, manager):
        with pytest.raises(NotFoundError):
            manager.update(str(uuid.uuid4()), payload(name="x"))

    def test_update_adds_firmware(self, manager, make_firmware, firmware_set):
        set_id, firmware = firmware_set
        (extra,) = make_firmware()

        manager.update(set_id, payload(name=None, firmware=[extra]))

        members = {f.uuid for f in manager.get(set_id).component_firmware}
        assert members == set(firmware) | {extra}

    def test_existing_member_is_rejected(self, manager, firmware_set):
        set_id, firmware = firmware_set
        with pytest.raises(ValidationError) as excinfo:
            manager.update(set_id, payload(name=None, firmware=[firmware[0]]))
        assert excinfo.value.message == f"{firmware[0]} already exists in firmware set"

    def test_repeated_uuid_in_payload_is_rejected(
        self, manager, make_firmware, firmware_set
    ):
        set_id, _ = firmware_set
        (extra,) = make_firmware()
        with pytest.raises(ValidationError) as excinfo:
            manager.update(set_id, payload(name=None, firmware=[extra, extra]))
        assert "already exists in firmware set" in excinfo.value.message

    def test_unknown_firmware(self, manager, firmware_set):
        set_id, _ = firmware_set
        missing = str(uuid.uuid4())
        with pytest.raises(ValidationError) as excinfo:
            manager.update(set_id, payload(name=None, firmware=[missing]))
        assert "firmware UUID does not exist" in excinfo.value.message

    def test_name_metadata_and_attributes(self, manager, firmware_set):
        set_id, firmware = firmware_set
        manager.update(
            set_id,
            payload(
                name="r640-updated",
                metadata={"pinned": True},
                attributes=[Attributes(namespace=LABELS, data={"model": "r640"})],
            ),
        )

        result = manager.get(set_id)
        assert result.name == "r640-updated"
        assert result.metadata == {"pinned": True}
        assert result.attributes[0].data == {"model": "r640"}
        assert {f.uuid for f in result.component_firmware} == set(firmware)

    def test_omitted_fields_are_kept(self, manager, db_session, make_firmware):
        set_id = manager.create(
            payload(name="keep", firmware=make_firmware(), metadata={"a": 1})
        )
        manager.update(set_id, ComponentFirmwareSetPayload())

        result = manager.get(set_id)
        assert result.name == "keep"
        assert result.metadata == {"a": 1}


class TestRemoveFirmware:
    def test_removes_only_named_members(self, manager, make_firmware):
        firmware = make_firmware(3)
        set_id = manager.create(payload(firmware=firmware))

        manager.remove_firmware(set_id, [firmware[0]])

        members = {f.uuid for f in manager.get(set_id).component_firmware}
        assert members == set(firmware[1:])

    def test_non_member_is_rejected(self, manager, make_firmware):
        firmware = make_firmware(2)
        set_id = manager.create(payload(firmware=firmware[:1]))

        with pytest.raises(ValidationError) as excinfo:
            manager.remove_firmware(set_id, [firmware[1]])
        assert "does not contain firmware" in excinfo.value.message

    def test_nil_id(self, manager):
        with pytest.raises(ValidationError) as excinfo:
            manager.remove_firmware(None, [str(uuid.uuid4())])
        assert excinfo.value.message == "expected a valid firmware set UUID"

    def test_unknown_set(self, manager):
        with pytest.raises(NotFoundError):
            manager.remove_firmware(str(uuid.uuid4()), [str(uuid.uuid4())])

    def test_payload_id_must_match_the_set(self, manager, make_firmware):
        firmware = make_firmware(2)
        set_id = manager.create(payload(firmware=firmware))

        for bad in ("00000000-0000-0000-0000-000000000000", str(uuid.uuid4())):
            with pytest.raises(ValidationError):
                manager.remove_firmware(set_id, [firmware[0]], payload_id=bad)

        assert len(manager.get(set_id).component_firmware) == 2
        manager.remove_firmware(set_id, [firmware[0]], payload_id=set_id)
        assert len(manager.get(set_id).component_firmware) == 1

    def test_invalid_uuid(self, manager, make_firmware):
        set_id = manager.create(payload(firmware=make_firmware()))
        with pytest.raises(ValidationError) as excinfo:
            manager.remove_firmware(set_id, ["nope"])
        assert excinfo.value.message == "invalid firmware UUID: nope"


class TestDelete:
    def test_delete_removes_set_members_and_attributes(
        self, manager, db_session, make_firmware
    ):
        set_id = manager.create(
            payload(
                firmware=make_firmware(2),
                attributes=[Attributes(namespace=LABELS, data={"x": 1})],
            )
        )
        assert counts(db_session) == (1, 2)

        manager.delete(set_id)

        assert counts(db_session) == (0, 0)
        assert db_session.query(AttributeModel).count() == 0
        with pytest.raises(NotFoundError):
            manager.delete(set_id)

    def test_firmware_versions_survive(self, manager, db_session, make_firmware):
        firmware = make_firmware(2)
        set_id = manager.create(payload(firmware=firmware))
        manager.delete(set_id)
        assert manager.firmware.existing_ids(firmware) == set(firmware)


class TestList:
    @pytest.fixture
    def sets(self, manager, make_firmware):
        firmware = make_firmware(2)
        r640 = manager.create(
            payload(
                name="r640",
                firmware=firmware,
                attributes=[
                    Attributes(
                        namespace=LABELS,
                        data={"vendor": "dell", "model": ["r640", "r650"], "latest": True},
                    )
                ],
            )
        )
        r6515 = manager.create(
            payload(
                name="r6515",
                firmware=firmware[:1],
                attributes=[
                    Attributes(
                        namespace=LABELS,
                        data={"vendor": "dell", "model": "r6515", "latest": False},
                    )
                ],
            )
        )
        return {"r640": r640, "r6515": r6515}

    def list_ids(self, manager, **kwargs):
        records, total = manager.list(ComponentFirmwareSetListParams(**kwargs))
        return {r.uuid for r in records}, total

    def test_filter_by_name(self, manager, sets):
        records, total = manager.list(ComponentFirmwareSetListParams(name="r640"))
        assert total == 1
        assert [r.uuid for r in records] == [sets["r640"]]
        assert len(records[0].component_firmware) == 2

    def test_attribute_equality(self, manager, sets):
        ids, total = self.list_ids(
            manager,
            attributes=[AttributeFilter(namespace=LABELS, keys=["model"], value="r6515")],
        )
        assert ids == {sets["r6515"]}
        assert total == 1

    def test_attribute_array_membership(self, manager, sets):
        ids, _ = self.list_ids(
            manager,
            attributes=[AttributeFilter(namespace=LABELS, keys=["model"], value="r650")],
        )
        assert ids == {sets["r640"]}

    def test_boolean_value(self, manager, sets):
        ids, _ = self.list_ids(
            manager,
            attributes=[AttributeFilter(namespace=LABELS, keys=["latest"], value=True)],
        )
        assert ids == {sets["r640"]}

    def test_or_group(self, manager, sets):
        ids, total = self.list_ids(
            manager,
            attributes=[
                AttributeFilter(namespace=LABELS, keys=["model"], value="r640"),
                AttributeFilter(
                    namespace=LABELS,
                    keys=["model"],
                    value="r6515",
                    attribute_operator="OR",
                ),
            ],
        )
        assert ids == set(sets.values())
        assert total == 2

    def test_and_groups_narrow(self, manager, sets):
        ids, _ = self.list_ids(
            manager,
            attributes=[
                AttributeFilter(namespace=LABELS, keys=["vendor"], value="dell"),
                AttributeFilter(namespace=LABELS, keys=["model"], value="r6515"),
            ],
        )
        assert ids == {sets["r6515"]}

    def test_namespace_exists_and_unknown_namespace(self, manager, sets):
        ids, _ = self.list_ids(manager, attributes=[AttributeFilter(namespace=LABELS)])
        assert ids == set(sets.values())

        ids, total = self.list_ids(
            manager, attributes=[AttributeFilter(namespace="no.such.namespace")]
        )
        assert ids == set()
        assert total == 0

    def test_total_is_stable_across_pages(self, manager, sets):
        first, total_1 = manager.list(
            ComponentFirmwareSetListParams(pagination=PaginationParams(page=1, limit=1))
        )
        second, total_2 = manager.list(
            ComponentFirmwareSetListParams(pagination=PaginationParams(page=2, limit=1))
        )
        assert total_1 == total_2 == 2
        assert {first[0].uuid, second[0].uuid} == set(sets.values())
