"""Tests for the exclusion pattern routes."""

import uuid

from site_analyzer.models.models import CrawlerExclusionPattern, Project

PROJECT_ID = uuid.uuid4()


def project() -> Project:
    return Project(id=PROJECT_ID, name="Example", domain="example.com", root_url="https://example.com", crawl_settings={})


class TestValidatePattern:

    def test_valid_pattern(self, client):
        response = client.post("/api/v1/exclusion-patterns/validate", json={"pattern": "*/listings/*"})
        assert response.status_code == 200
        assert response.json() == {
            "pattern": "*/listings/*",
            "valid": True,
            "reason": None,
            "regex": "^.*/listings/.*$",
        }

    def test_too_long_pattern(self, client):
        response = client.post("/api/v1/exclusion-patterns/validate", json={"pattern": "a" * 101})
        body = response.json()
        assert response.status_code == 200
        assert body["valid"] is False
        assert "100" in body["reason"]


class TestCreatePattern:

    def test_creates_pattern(self, client, db):
        db.get.return_value = project()
        response = client.post(
            "/api/v1/exclusion-patterns",
            json={"project_id": str(PROJECT_ID), "pattern": "*/tag/*", "description": "Tag archives"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["pattern"] == "*/tag/*"
        assert body["project_id"] == str(PROJECT_ID)
        assert body["is_active"] is True
        db.add.assert_called_once()
        db.flush.assert_awaited_once()

    def test_invalid_pattern_is_rejected_before_any_lookup(self, client, db):
        response = client.post(
            "/api/v1/exclusion-patterns",
            json={"project_id": str(PROJECT_ID), "pattern": "x" * 150},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "PatternTooLongError"
        db.get.assert_not_awaited()

    def test_unknown_project(self, client, db):
        response = client.post(
            "/api/v1/exclusion-patterns",
            json={"project_id": str(PROJECT_ID), "pattern": "*/tag/*"},
        )
        assert response.status_code == 404

    def test_duplicate_pattern(self, client, db, result_of):
        db.get.return_value = project()
        db.execute.return_value = result_of(scalar=CrawlerExclusionPattern(pattern="*/tag/*"))
        response = client.post(
            "/api/v1/exclusion-patterns",
            json={"project_id": str(PROJECT_ID), "pattern": "*/tag/*"},
        )
        assert response.status_code == 409
        db.add.assert_not_called()


class TestListPatterns:

    def test_lists_patterns(self, client, db, result_of):
        rows = [
            CrawlerExclusionPattern(
                id=uuid.uuid4(), project_id=PROJECT_ID, pattern=pattern,
                description=None, is_default=is_default, is_active=True,
            )
            for pattern, is_default in (("*/listings/*", True), ("*/cart*", False))
        ]
        db.execute.return_value = result_of(rows=rows)

        response = client.get("/api/v1/exclusion-patterns", params={"project_id": str(PROJECT_ID)})
        assert response.status_code == 200
        assert [(p["pattern"], p["is_default"]) for p in response.json()] == [("*/listings/*", True), ("*/cart*", False)]

    def test_project_id_required(self, client):
        assert client.get("/api/v1/exclusion-patterns").status_code == 422
