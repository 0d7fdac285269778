"""API tests for the HTTP surface

Tests cover:
- Authentication of every /api/v1 endpoint
- Error envelope and status code per engine error
- Document lifecycle through the REST endpoints
- Bulk send status codes
- Role administration and activity log access
- Health, metrics and request id correlation
"""

import pytest

from docflow.auth.jwt import create_access_token
from docflow.domain.documents import DocumentStatus

pytestmark = pytest.mark.integration


def _draft_payload(**overrides):
    payload = {
        "branch_ba_code": 1060,
        "mt_number": "MT-2568/0500",
        "mt_date": "2025-03-01",
        "subject": "ค่าซ่อมแซมท่อประปา",
        "month_year": "มีนาคม 2568",
        "additional_docs": ["ใบสั่งจ้าง"],
        "has_additional_docs": True,
    }
    payload.update(overrides)
    return payload


class TestAuthentication:
    def test_missing_token_is_rejected(self, client):
        response = client.get("/api/v1/documents")

        assert response.status_code in (401, 403)

    def test_invalid_token(self, client):
        response = client.get("/api/v1/documents", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_token_for_unknown_user(self, client):
        token = create_access_token(user_id=987654, username="ghost")

        response = client.get("/api/v1/documents", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestProfileSync:
    SYNC_HEADERS = {"X-Identity-Sync-Key": "test-identity-sync-key"}

    def test_first_login_creates_user_and_token(self, client, repository):
        response = client.post(
            "/api/v1/auth/sync",
            json={"username": "malee.k", "first_name": "มาลี", "ba": "1060", "position": "หัวหน้างานบัญชี"},
            headers=self.SYNC_HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] is True
        assert body["roles"] == ["branch_manager", "branch_user", "user"]
        user = repository.get_user_by_username("malee.k")
        assert user.id == body["user_id"]
        assert repository.get_user_role_names(user.id) == ["branch_manager", "branch_user", "user"]

        documents = client.get(
            "/api/v1/documents",
            headers={"Authorization": f"Bearer {body['access_token']}"},
        )
        assert documents.status_code == 200

    def test_later_login_keeps_manual_roles(self, client, repository, admin_user):
        """Sync on the next login adds implied roles and never removes admin"""
        response = client.post(
            "/api/v1/auth/sync",
            json={"username": admin_user.username, "ba": "1059"},
            headers=self.SYNC_HEADERS,
        )

        body = response.json()
        assert body["created"] is False
        assert {"admin", "district_manager", "uploader", "user"} <= set(body["roles"])

    @pytest.mark.parametrize("headers", [{}, {"X-Identity-Sync-Key": "wrong-key"}])
    def test_sync_requires_key(self, client, repository, headers):
        response = client.post("/api/v1/auth/sync", json={"username": "intruder"}, headers=headers)

        assert response.status_code == 401
        assert repository.get_user_by_username("intruder") is None


class TestDocumentEndpoints:
    def test_create_draft(self, client, auth_headers, uploader):
        response = client.post("/api/v1/documents", json=_draft_payload(), headers=auth_headers(uploader))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "draft"
        assert body["uploader_id"] == uploader.id
        assert body["version"] == 1

    def test_create_rejects_unknown_fields(self, client, auth_headers, uploader):
        response = client.post(
            "/api/v1/documents",
            json=_draft_payload(status="complete"),
            headers=auth_headers(uploader),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_create_without_permission(self, client, auth_headers, branch_user):
        response = client.post("/api/v1/documents", json=_draft_payload(), headers=auth_headers(branch_user))

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    def test_status_update(self, client, auth_headers, make_document, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        response = client.patch(
            f"/api/v1/documents/{document.id}/status",
            json={"status": "acknowledged", "comment": "รับทราบ"},
            headers=auth_headers(branch_user),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "acknowledged"
        assert response.json()["version"] == document.version + 1

    def test_invalid_transition_is_400(self, client, auth_headers, make_document, admin_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        response = client.patch(
            f"/api/v1/documents/{document.id}/status",
            json={"status": "complete"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_transition"

    def test_role_gate_is_403_with_required_roles(self, client, auth_headers, make_document, plain_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        response = client.patch(
            f"/api/v1/documents/{document.id}/status",
            json={"status": "acknowledged"},
            headers=auth_headers(plain_user),
        )

        assert response.status_code == 403
        assert "branch_user" in response.json()["details"]["required_roles"]

    def test_unknown_status_value_is_422(self, client, auth_headers, make_document, admin_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        response = client.patch(
            f"/api/v1/documents/{document.id}/status",
            json={"status": "archived"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 422

    def test_missing_document_is_404(self, client, auth_headers, admin_user):
        response = client.get("/api/v1/documents/55555", headers=auth_headers(admin_user))

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_other_branch_document_is_403(self, client, auth_headers, make_document, other_branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1060)

        response = client.get(f"/api/v1/documents/{document.id}", headers=auth_headers(other_branch_user))

        assert response.status_code == 403

    def test_detail(self, client, auth_headers, make_document, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)
        client.post(
            f"/api/v1/documents/{document.id}/comments",
            json={"content": "เอกสารครบ"},
            headers=auth_headers(branch_user),
        )

        response = client.get(f"/api/v1/documents/{document.id}", headers=auth_headers(branch_user))

        assert response.status_code == 200
        body = response.json()
        assert body["document"]["id"] == document.id
        assert [c["content"] for c in body["comments"]] == ["เอกสารครบ"]
        assert body["history"] == []

    def test_branch_listing_denied_for_other_branch(self, client, auth_headers, branch_user):
        response = client.get("/api/v1/documents/branch/1061", headers=auth_headers(branch_user))

        assert response.status_code == 403

    def test_listing_with_pagination(self, client, auth_headers, make_document, district_manager):
        for _ in range(3):
            make_document(DocumentStatus.SENT_TO_BRANCH)

        response = client.get("/api/v1/documents?page=1&limit=2", headers=auth_headers(district_manager))

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 3
        assert len(body["items"]) == 2
        assert body["total_pages"] == 2

    def test_edit_and_delete_draft(self, client, auth_headers, make_document, uploader):
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)

        edited = client.patch(
            f"/api/v1/documents/{draft.id}",
            json={"subject": "แก้ไขแล้ว"},
            headers=auth_headers(uploader),
        )
        deleted = client.delete(f"/api/v1/documents/{draft.id}", headers=auth_headers(uploader))

        assert edited.status_code == 200
        assert edited.json()["subject"] == "แก้ไขแล้ว"
        assert deleted.status_code == 204

    def test_edit_sent_document_is_409(self, client, auth_headers, make_document, uploader):
        sent = make_document(DocumentStatus.SENT_TO_BRANCH, owner=uploader)

        response = client.patch(
            f"/api/v1/documents/{sent.id}",
            json={"subject": "x"},
            headers=auth_headers(uploader),
        )

        assert response.status_code == 409


class TestBulkSendEndpoint:
    def test_partial_success_is_200(self, client, auth_headers, make_document, uploader):
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)
        sent = make_document(DocumentStatus.SENT_TO_BRANCH, owner=uploader)

        response = client.post(
            "/api/v1/documents/bulk-send",
            json={"document_ids": [draft.id, sent.id]},
            headers=auth_headers(uploader),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["sent_count"] == 1
        assert body["results"][1]["success"] is False

    def test_nothing_sent_is_400_with_results(self, client, auth_headers, uploader):
        response = client.post(
            "/api/v1/documents/bulk-send",
            json={"document_ids": [424242]},
            headers=auth_headers(uploader),
        )

        assert response.status_code == 400
        assert response.json()["results"][0]["error"] == "Document not found"

    @pytest.mark.parametrize("document_ids", [[], list(range(1, 52))])
    def test_batch_size_is_422(self, client, auth_headers, uploader, document_ids):
        response = client.post(
            "/api/v1/documents/bulk-send",
            json={"document_ids": document_ids},
            headers=auth_headers(uploader),
        )

        assert response.status_code == 422


class TestRoleEndpoints:
    def test_delete_protected_role_is_409(self, client, auth_headers, repository, admin_user):
        role = repository.get_role_by_name("admin")

        response = client.delete(f"/api/v1/roles/{role.id}", headers=auth_headers(admin_user))

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_create_role(self, client, auth_headers, admin_user):
        response = client.post(
            "/api/v1/roles",
            json={"name": "auditor", "description": "ผู้ตรวจสอบ"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 201
        assert response.json()["name"] == "auditor"

    def test_replace_user_roles(self, client, auth_headers, repository, admin_user, branch_user):
        manager = repository.get_role_by_name("branch_manager")

        response = client.put(
            f"/api/v1/users/{branch_user.id}/roles",
            json={"role_ids": [manager.id]},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 200
        assert response.json()["roles"] == ["branch_manager"]

    def test_role_listing_requires_admin(self, client, auth_headers, branch_user):
        response = client.get("/api/v1/roles", headers=auth_headers(branch_user))

        assert response.status_code == 403

    def test_own_roles(self, client, auth_headers, branch_user):
        response = client.get(f"/api/v1/users/{branch_user.id}/roles", headers=auth_headers(branch_user))

        assert response.status_code == 200
        assert response.json()["roles"] == ["branch_user", "user"]


class TestActivityLogEndpoint:
    def test_admin_reads_logs(self, client, auth_headers, make_document, admin_user, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)
        client.patch(
            f"/api/v1/documents/{document.id}/status",
            json={"status": "acknowledged"},
            headers=auth_headers(branch_user),
        )

        response = client.get(
            f"/api/v1/activity-logs?action=status_update&document_id={document.id}",
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        entry = body["entries"][0]
        assert entry["user_id"] == branch_user.id
        assert entry["details"]["to_status"] == "acknowledged"

    def test_branch_user_is_denied(self, client, auth_headers, branch_user):
        response = client.get("/api/v1/activity-logs", headers=auth_headers(branch_user))

        assert response.status_code == 403


class TestObservability:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["components"]["database"]["status"] == "healthy"

    def test_metrics(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "docflow_" in response.text

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-abc-123"})

        assert response.headers["X-Request-ID"] == "req-abc-123"

    def test_request_id_generated(self, client):
        response = client.get("/health")

        assert response.headers.get("X-Request-ID")
