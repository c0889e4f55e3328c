"""
Tests for the firmware set and firmware version endpoints.

Database setup is handled by the shared fixtures in conftest.py.
"""

import uuid

import pytest

BASE = "/api/v1"
LABELS = "sh.hollow.firmware_set.labels"


def create_firmware(client, filename, vendor="dell", model=("r640",)):
    response = client.post(
        f"{BASE}/server-component-firmwares",
        json={
            "vendor": vendor,
            "model": list(model),
            "filename": filename,
            "version": "2.17.1",
            "component": "bios",
        },
    )
    assert response.status_code == 201
    return response.json()["slug"]


@pytest.fixture
def firmware_ids(client):
    return [create_firmware(client, f"bios-{i}.bin") for i in range(2)]


def create_set(client, name, firmware, labels=None):
    body = {"name": name, "component_firmware_uuids": firmware}
    if labels is not None:
        body["attributes"] = [{"namespace": LABELS, "data": labels}]
    return client.post(f"{BASE}/component-firmware-sets", json=body)


class TestFirmwareSetEndpoints:
    def test_create_and_get(self, client, firmware_ids):
        response = create_set(client, "r640", firmware_ids, {"model": "r640"})
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "resource created"
        set_id = body["slug"]

        response = client.get(f"{BASE}/component-firmware-sets/{set_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["uuid"] == set_id
        assert data["name"] == "r640"
        assert {f["uuid"] for f in data["component_firmware"]} == set(firmware_ids)
        assert data["attributes"][0]["namespace"] == LABELS

    def test_invalid_uuid_is_400(self, client):
        response = create_set(client, "foobar", ["d825bbeb-20fb-452e-9fe4-invalid"])
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation"
        assert "invalid firmware UUID" in body["message"]

    def test_duplicate_uuids_is_400(self, client, firmware_ids):
        response = create_set(client, "foobar", [firmware_ids[0], firmware_ids[0]])
        assert response.status_code == 400
        assert "unique firmware versions" in response.json()["message"]

    def test_get_unknown_is_404(self, client):
        response = client.get(f"{BASE}/component-firmware-sets/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_update_and_remove_firmware(self, client, firmware_ids):
        set_id = create_set(client, "r640", firmware_ids[:1]).json()["slug"]

        response = client.put(
            f"{BASE}/component-firmware-sets/{set_id}",
            json={"component_firmware_uuids": firmware_ids[1:]},
        )
        assert response.status_code == 200
        assert response.json() == {"message": "resource updated", "slug": set_id}

        response = client.post(
            f"{BASE}/component-firmware-sets/{set_id}/remove-firmware",
            json={"component_firmware_uuids": firmware_ids[:1]},
        )
        assert response.status_code == 200

        data = client.get(f"{BASE}/component-firmware-sets/{set_id}").json()
        assert [f["uuid"] for f in data["component_firmware"]] == firmware_ids[1:]

    def test_remove_non_member_is_400(self, client, firmware_ids):
        set_id = create_set(client, "r640", firmware_ids[:1]).json()["slug"]
        response = client.post(
            f"{BASE}/component-firmware-sets/{set_id}/remove-firmware",
            json={"component_firmware_uuids": firmware_ids[1:]},
        )
        assert response.status_code == 400
        assert "does not contain firmware" in response.json()["message"]

    def test_update_with_nil_payload_uuid_is_400(self, client, firmware_ids):
        set_id = create_set(client, "r640", firmware_ids).json()["slug"]
        response = client.put(
            f"{BASE}/component-firmware-sets/{set_id}",
            json={"uuid": "00000000-0000-0000-0000-000000000000", "name": "renamed"},
        )
        assert response.status_code == 400

        data = client.get(f"{BASE}/component-firmware-sets/{set_id}").json()
        assert data["name"] == "r640"

    def test_remove_with_nil_payload_uuid_is_400(self, client, firmware_ids):
        set_id = create_set(client, "r640", firmware_ids).json()["slug"]
        response = client.post(
            f"{BASE}/component-firmware-sets/{set_id}/remove-firmware",
            json={
                "uuid": "00000000-0000-0000-0000-000000000000",
                "component_firmware_uuids": firmware_ids[:1],
            },
        )
        assert response.status_code == 400

        data = client.get(f"{BASE}/component-firmware-sets/{set_id}").json()
        assert len(data["component_firmware"]) == 2

    def test_delete(self, client, firmware_ids):
        set_id = create_set(client, "r640", firmware_ids).json()["slug"]

        response = client.delete(f"{BASE}/component-firmware-sets/{set_id}")
        assert response.status_code == 200
        assert response.json()["message"] == "resource deleted"

        response = client.delete(f"{BASE}/component-firmware-sets/{set_id}")
        assert response.status_code == 404

    def test_list_by_name(self, client, firmware_ids):
        create_set(client, "r640", firmware_ids)
        create_set(client, "r6515", firmware_ids)

        response = client.get(f"{BASE}/component-firmware-sets", params={"name": "r640"})
        assert response.status_code == 200
        body = response.json()
        assert body["total_record_count"] == 1
        assert body["page_count"] == 1
        assert body["records"][0]["name"] == "r640"

    def test_list_with_attribute_filters(self, client, firmware_ids):
        create_set(client, "a", firmware_ids, {"vendor": "dell", "model": "r640"})
        create_set(client, "b", firmware_ids, {"vendor": "dell", "model": "r6515"})
        create_set(client, "c", firmware_ids, {"vendor": "hpe", "model": "dl360"})

        params = [
            ("attr[0].namespace", LABELS),
            ("attr[0].keys", "model"),
            ("attr[0].value", "r640"),
            ("attr[1].namespace", LABELS),
            ("attr[1].keys", "model"),
            ("attr[1].value", "dl360"),
            ("attr[1].op", "OR"),
        ]
        body = client.get(f"{BASE}/component-firmware-sets", params=params).json()
        assert sorted(r["name"] for r in body["records"]) == ["a", "c"]

    def test_unsupported_filter_operator_is_400(self, client):
        params = {
            "attr[0].namespace": LABELS,
            "attr[0].keys": "model",
            "attr[0].operator": "like",
            "attr[0].value": "r6%",
        }
        response = client.get(f"{BASE}/component-firmware-sets", params=params)
        assert response.status_code == 400

    def test_quoted_filter_key_is_400(self, client):
        params = {
            "attr[0].namespace": LABELS,
            "attr[0].keys": 'mo"del',
            "attr[0].value": "r640",
        }
        response = client.get(f"{BASE}/component-firmware-sets", params=params)
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_pagination_envelope(self, client, firmware_ids):
        for i in range(5):
            create_set(client, f"set-{i}", firmware_ids)

        first = client.get(
            f"{BASE}/component-firmware-sets", params={"page": 1, "limit": 2}
        ).json()
        third = client.get(
            f"{BASE}/component-firmware-sets", params={"page": 3, "limit": 2}
        ).json()

        assert first["total_record_count"] == third["total_record_count"] == 5
        assert first["total_pages"] == 3
        assert first["page_size"] == 2
        assert third["page_count"] == 1

    def test_out_of_range_page_is_400(self, client):
        response = client.get(
            f"{BASE}/component-firmware-sets",
            params={"page": "100000000000000000000"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_malformed_body_is_400(self, client):
        response = client.post(
            f"{BASE}/component-firmware-sets",
            json={"name": "x", "component_firmware_uuids": "not-a-list"},
        )
        assert response.status_code == 400


class TestFirmwareEndpoints:
    def test_crud(self, client):
        firmware_id = create_firmware(client, "bios.bin", model=("R640",))

        data = client.get(f"{BASE}/server-component-firmwares/{firmware_id}").json()
        assert data["model"] == ["r640"]

        response = client.put(
            f"{BASE}/server-component-firmwares/{firmware_id}",
            json={"vendor": "dell", "filename": "bios.bin", "version": "2.18.0"},
        )
        assert response.status_code == 200

        listing = client.get(
            f"{BASE}/server-component-firmwares", params={"version": "2.18.0"}
        ).json()
        assert [r["uuid"] for r in listing["records"]] == [firmware_id]

        response = client.delete(f"{BASE}/server-component-firmwares/{firmware_id}")
        assert response.status_code == 200

    def test_duplicate_is_409(self, client):
        create_firmware(client, "bios.bin")
        response = client.post(
            f"{BASE}/server-component-firmwares",
            json={"vendor": "dell", "filename": "bios.bin", "version": "2.17.1"},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_delete_referenced_is_409(self, client, firmware_ids):
        create_set(client, "r640", firmware_ids)
        response = client.delete(f"{BASE}/server-component-firmwares/{firmware_ids[0]}")
        assert response.status_code == 409


class TestSystemEndpoints:
    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_version(self, client):
        response = client.get("/version")
        assert response.status_code == 200
        assert "version" in response.json()

    def test_request_id_is_echoed(self, client):
        response = client.get("/healthz", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
