"""Integration tests for DocumentService

Tests cover:
- Draft creation, editing and deletion rules
- Visibility-aware listing, search and branch listing
- Document detail with history and comments
- Comments
"""

from datetime import date

import pytest

from docflow.domain.documents import DocumentStatus
from docflow.domain.records import ActivityLogFilters, DocumentFilters
from docflow.errors import Conflict, NotFound, PermissionDenied, ValidationError

pytestmark = pytest.mark.integration


def _draft_data(**overrides):
    data = {
        "branch_ba_code": 1060,
        "mt_number": "MT-2568/0100",
        "mt_date": date(2025, 2, 3),
        "subject": "ค่าไฟฟ้าสถานีผลิตน้ำ",
        "month_year": "กุมภาพันธ์ 2568",
        "additional_docs": ["ใบแจ้งหนี้", "ใบเสร็จ"],
        "has_additional_docs": True,
    }
    data.update(overrides)
    return data


class TestCreateDocument:
    def test_uploader_creates_draft(self, document_service, repository, uploader):
        document = document_service.create_document(uploader, _draft_data())

        assert document.status == DocumentStatus.DRAFT
        assert document.uploader_id == uploader.id
        assert document.version == 1
        assert document.additional_docs == ["ใบแจ้งหนี้", "ใบเสร็จ"]
        entries = repository.list_activity_logs(ActivityLogFilters(action="create_document"))
        assert entries.data[0].document_id == document.id

    def test_branch_user_cannot_create(self, document_service, branch_user):
        with pytest.raises(PermissionDenied):
            document_service.create_document(branch_user, _draft_data())

    def test_missing_fields(self, document_service, uploader):
        with pytest.raises(ValidationError) as exc_info:
            document_service.create_document(uploader, _draft_data(subject="", mt_number=None))
        assert set(exc_info.value.field_errors) == {"subject", "mt_number"}

    def test_unknown_branch(self, document_service, uploader):
        """Test documents can only target an active branch"""
        with pytest.raises(ValidationError) as exc_info:
            document_service.create_document(uploader, _draft_data(branch_ba_code=9999))
        assert "branch_ba_code" in exc_info.value.field_errors


class TestUpdateDraftMetadata:
    def test_owner_edits_draft(self, document_service, make_document, uploader):
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)

        updated = document_service.update_draft_metadata(uploader, draft.id, {"subject": "แก้ไขเรื่อง", "status": "complete"})

        assert updated.subject == "แก้ไขเรื่อง"
        assert updated.status == DocumentStatus.DRAFT

    def test_owner_cannot_edit_sent_document(self, document_service, make_document, uploader):
        sent = make_document(DocumentStatus.SENT_TO_BRANCH, owner=uploader)

        with pytest.raises(Conflict):
            document_service.update_draft_metadata(uploader, sent.id, {"subject": "x"})

    def test_admin_edits_any_draft(self, document_service, make_document, admin_user, uploader):
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)

        updated = document_service.update_draft_metadata(admin_user, draft.id, {"branch_ba_code": 1061})

        assert updated.branch_ba_code == 1061

    @pytest.mark.parametrize("status", [s for s in DocumentStatus if s != DocumentStatus.DRAFT])
    def test_admin_cannot_edit_sent_document(self, document_service, repository, make_document, admin_user, status):
        """A sent document never moves branch outside a status transition"""
        document = make_document(status, ba_code=1060)

        with pytest.raises(Conflict):
            document_service.update_draft_metadata(admin_user, document.id, {"branch_ba_code": 1061})

        current = repository.get_document_by_id(document.id)
        assert current.branch_ba_code == 1060
        assert current.version == document.version

    def test_branch_user_cannot_edit(self, document_service, make_document, branch_user):
        sent = make_document(DocumentStatus.SENT_TO_BRANCH)

        with pytest.raises(PermissionDenied):
            document_service.update_draft_metadata(branch_user, sent.id, {"subject": "x"})


class TestDeleteDocument:
    def test_owner_deletes_draft(self, document_service, repository, make_document, uploader):
        """The delete entry keeps the id in its details and outlives the document"""
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)
        document_service.add_comment(uploader, draft.id, "ร่างแรก")

        document_service.delete_document(uploader, draft.id)

        assert repository.get_document_by_id(draft.id) is None
        assert repository.list_comments(draft.id) == []
        entries = repository.list_activity_logs(ActivityLogFilters(action="delete_document"))
        assert entries.total == 1
        assert entries.data[0].document_id is None
        assert entries.data[0].details["document_id"] == draft.id
        assert repository.list_activity_logs(ActivityLogFilters(action="add_comment")).total == 1

    def test_owner_cannot_delete_sent_document(self, document_service, make_document, uploader):
        sent = make_document(DocumentStatus.SENT_TO_BRANCH, owner=uploader)

        with pytest.raises(PermissionDenied):
            document_service.delete_document(uploader, sent.id)

    def test_other_uploader_cannot_delete_draft(self, document_service, make_document, uploader, second_uploader):
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)

        with pytest.raises(PermissionDenied):
            document_service.delete_document(second_uploader, draft.id)

    def test_admin_deletes_any_status(self, document_service, transition_engine, repository, make_document, admin_user, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)
        transition_engine.transition(document.id, DocumentStatus.ACKNOWLEDGED, branch_user.id)

        document_service.delete_document(admin_user, document.id)

        assert repository.get_document_by_id(document.id) is None
        history = repository.list_activity_logs(ActivityLogFilters(action="status_update"))
        assert history.total == 1
        assert history.data[0].document_id is None

    def test_missing_document(self, document_service, admin_user):
        with pytest.raises(NotFound):
            document_service.delete_document(admin_user, 8080)


class TestListDocuments:
    def test_draft_listing_shows_only_own_drafts(self, document_service, make_document, uploader, second_uploader):
        """Test drafts are private even within one branch"""
        mine = make_document(DocumentStatus.DRAFT, owner=uploader)
        make_document(DocumentStatus.DRAFT, owner=second_uploader)

        page = document_service.list_documents(uploader, DocumentFilters(status=DocumentStatus.DRAFT))

        assert [d.id for d in page.data] == [mine.id]

    def test_default_listing_excludes_drafts(self, document_service, make_document, uploader, second_uploader):
        make_document(DocumentStatus.DRAFT, owner=uploader)
        theirs = make_document(DocumentStatus.SENT_TO_BRANCH, owner=second_uploader)

        page = document_service.list_documents(uploader, DocumentFilters())

        assert [d.id for d in page.data] == [theirs.id]

    def test_branch_user_sees_own_branch_only(self, document_service, make_document, branch_user):
        own = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1060)
        make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1061)

        page = document_service.list_documents(branch_user, DocumentFilters())

        assert [d.id for d in page.data] == [own.id]
        assert page.total == 1

    def test_district_manager_sees_all_branches(self, document_service, make_document, district_manager):
        make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1060)
        make_document(DocumentStatus.ACKNOWLEDGED, ba_code=1061)

        page = document_service.list_documents(district_manager, DocumentFilters())

        assert page.total == 2

    def test_search_and_status_filter(self, document_service, make_document, district_manager):
        make_document(DocumentStatus.SENT_TO_BRANCH, subject="ค่าไฟฟ้า")
        water = make_document(DocumentStatus.SENT_TO_BRANCH, subject="ค่าน้ำมันเชื้อเพลิง")
        make_document(DocumentStatus.ACKNOWLEDGED, subject="ค่าน้ำมันเชื้อเพลิง")

        page = document_service.list_documents(
            district_manager,
            DocumentFilters(status=DocumentStatus.SENT_TO_BRANCH, search="น้ำมัน"),
        )

        assert [d.id for d in page.data] == [water.id]

    def test_pagination_is_clamped(self, document_service, make_document, district_manager):
        for _ in range(3):
            make_document(DocumentStatus.SENT_TO_BRANCH)

        page = document_service.list_documents(district_manager, DocumentFilters(page=2, limit=2))
        oversized = document_service.list_documents(district_manager, DocumentFilters(limit=10000))

        assert page.total == 3
        assert len(page.data) == 1
        assert page.total_pages == 2
        assert oversized.limit == 100


class TestListBranchDocuments:
    def test_other_branch_is_denied(self, document_service, make_document, branch_user):
        """Test a 1060 user asking for 1061 gets PermissionDenied, not data"""
        make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1061)

        with pytest.raises(PermissionDenied):
            document_service.list_branch_documents(branch_user, 1061, DocumentFilters())

    def test_own_branch(self, document_service, make_document, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1060)
        make_document(DocumentStatus.DRAFT, ba_code=1060)

        page = document_service.list_branch_documents(branch_user, 1060, DocumentFilters())

        assert [d.id for d in page.data] == [document.id]

    def test_drafts_never_listed_by_branch(self, document_service, make_document, admin_user):
        make_document(DocumentStatus.DRAFT, ba_code=1060)

        page = document_service.list_branch_documents(
            admin_user, 1060, DocumentFilters(status=DocumentStatus.DRAFT)
        )

        assert page.total == 0


class TestDocumentDetail:
    def test_detail_includes_history_and_comments(self, document_service, transition_engine, repository, make_document, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)
        transition_engine.transition(document.id, DocumentStatus.ACKNOWLEDGED, branch_user.id)
        document_service.add_comment(branch_user, document.id, "ตรวจสอบแล้ว")

        detail = document_service.get_document(branch_user, document.id)

        assert detail.document.status == DocumentStatus.ACKNOWLEDGED
        assert [h.to_status for h in detail.history] == ["acknowledged"]
        assert [c.content for c in detail.comments] == ["ตรวจสอบแล้ว"]
        assert repository.list_activity_logs(ActivityLogFilters(action="view_document")).total == 1

    def test_detail_denied_across_branches(self, document_service, make_document, other_branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1060)

        with pytest.raises(PermissionDenied):
            document_service.get_document(other_branch_user, document.id)

    def test_history_requires_access(self, document_service, make_document, other_branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=1060)

        with pytest.raises(PermissionDenied):
            document_service.get_history(other_branch_user, document.id)


class TestComments:
    def test_add_comment(self, document_service, repository, make_document, branch_manager):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        comment = document_service.add_comment(branch_manager, document.id, "  ขาดเอกสารแนบ  ")

        assert comment.content == "ขาดเอกสารแนบ"
        assert comment.user_id == branch_manager.id
        assert repository.list_activity_logs(ActivityLogFilters(action="add_comment")).total == 1

    def test_blank_comment(self, document_service, make_document, branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        with pytest.raises(ValidationError):
            document_service.add_comment(branch_user, document.id, "   ")

    def test_comment_requires_permission(self, document_service, make_user, make_document):
        """Uploader-only accounts hold no comments:create"""
        from docflow.domain.roles import RoleName

        uploader_only = make_user("upload.only", [RoleName.UPLOADER])
        document = make_document(DocumentStatus.SENT_TO_BRANCH)

        with pytest.raises(PermissionDenied):
            document_service.add_comment(uploader_only, document.id, "ok")
