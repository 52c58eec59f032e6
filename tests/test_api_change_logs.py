class TestChangeLogEndpoints:
    def test_list_filters_by_object(self, client, auth_headers):
        resp = client.post(
            "/subsidiaries",
            json={"code": "ROOT", "name_en": "Root"},
            headers=auth_headers,
        )
        subsidiary_id = resp.json()["id"]
        client.patch(
            f"/subsidiaries/{subsidiary_id}",
            json={"name_zh": "总部", "version": 1},
            headers=auth_headers,
        )

        resp = client.get(
            f"/change-logs?object_type=subsidiary&object_id={subsidiary_id}",
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 2
        assert {item["action"] for item in data["items"]} == {"create", "update"}
        assert data["items"][0]["operator_id"] == auth_headers["X-Actor-Id"]

    def test_filter_by_action(self, client, auth_headers):
        client.post(
            "/subsidiaries",
            json={"code": "ROOT", "name_en": "Root"},
            headers=auth_headers,
        )
        resp = client.get("/change-logs?action=update", headers=auth_headers)
        assert resp.json()["count"] == 0
