"""Tests for project registration."""

import uuid


class TestProjects:

    def test_create_normalizes_domain(self, client, db):
        response = client.post(
            "/api/v1/projects",
            json={"name": "Shop", "domain": "Shop.Example.com/products", "crawl_settings": {"maxPages": 10}},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["domain"] == "shop.example.com"
        assert body["root_url"] == "https://shop.example.com"
        assert body["crawl_settings"]["maxPages"] == 10
        assert body["crawl_settings"]["respectRobotsTxt"] is True
        db.add.assert_called_once()

    def test_create_rejects_unusable_domain(self, client):
        response = client.post("/api/v1/projects", json={"name": "Bad", "domain": "https://"})
        assert response.status_code == 422

    def test_get_missing_project(self, client):
        assert client.get(f"/api/v1/projects/{uuid.uuid4()}").status_code == 404
