"""Integration tests for AccessGuard

Tests cover:
- Branch isolation for branch-scoped roles
- All-branch access for admin and district_manager
- Draft privacy between uploaders of the same branch
- Deny-by-default for users without a branch and for degraded resolution
"""

import pytest

from docflow.auth.permission_resolver import ResolvedAccess
from docflow.domain.documents import DocumentStatus
from docflow.domain.roles import RoleName
from docflow.errors import NotFound, PermissionDenied

BRANCH_A = 1060
BRANCH_B = 1061

pytestmark = pytest.mark.integration


class TestAccessibleBranches:
    def test_branch_user_sees_only_own_branch(self, guard, resolver, branch_user):
        """Test a 1060 branch user never gets 1061"""
        branches = guard.accessible_branches(branch_user, resolver.resolve(branch_user.id))

        assert branches == [BRANCH_A]
        assert BRANCH_B not in branches

    def test_branch_manager_is_branch_scoped(self, guard, resolver, branch_manager):
        assert guard.accessible_branches(branch_manager, resolver.resolve(branch_manager.id)) == [BRANCH_A]

    @pytest.mark.parametrize("fixture_name", ["admin_user", "district_manager"])
    def test_elevated_roles_see_every_active_branch(self, request, guard, resolver, repository, fixture_name):
        user = request.getfixturevalue(fixture_name)

        branches = guard.accessible_branches(user, resolver.resolve(user.id))

        assert branches == [b.ba_code for b in repository.list_active_branches()]
        assert {BRANCH_A, BRANCH_B} <= set(branches)

    def test_user_without_branch_sees_nothing(self, guard, resolver, make_user):
        nomad = make_user("no.branch", [RoleName.USER], ba=None)

        assert guard.accessible_branches(nomad, resolver.resolve(nomad.id)) == []

    def test_cost_center_fallback(self, guard, resolver, repository, make_user):
        """A non-numeric BA falls back to the cost centre code"""
        user = make_user("cc.user", [RoleName.BRANCH_USER], ba="N/A")
        with repository.transaction():
            user, _ = repository.upsert_user(user.username, {"cost_center": str(BRANCH_B)})

        assert guard.accessible_branches(user, resolver.resolve(user.id)) == [BRANCH_B]

    def test_degraded_access_sees_nothing(self, guard, admin_user):
        degraded = ResolvedAccess(
            user_id=admin_user.id,
            roles=frozenset({"guest"}),
            permissions=frozenset(),
            degraded=True,
        )

        assert guard.accessible_branches(admin_user, degraded) == []


class TestDocumentAccess:
    def test_branch_isolation(self, guard, resolver, make_document, branch_user, other_branch_user):
        """Test a branch document is visible to its branch only"""
        document = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=BRANCH_A)

        assert guard.can_access_document(branch_user, document, resolver.resolve(branch_user.id))
        assert not guard.can_access_document(other_branch_user, document, resolver.resolve(other_branch_user.id))

    def test_require_raises_permission_denied(self, guard, resolver, make_document, other_branch_user):
        document = make_document(DocumentStatus.SENT_TO_BRANCH, ba_code=BRANCH_A)

        with pytest.raises(PermissionDenied) as exc_info:
            guard.require_document_access(other_branch_user, document, resolver.resolve(other_branch_user.id))
        assert exc_info.value.details["document_id"] == document.id

    def test_require_branch_access(self, guard, resolver, branch_user):
        access = resolver.resolve(branch_user.id)

        guard.require_branch_access(branch_user, BRANCH_A, access)
        with pytest.raises(PermissionDenied):
            guard.require_branch_access(branch_user, BRANCH_B, access)

    def test_draft_private_to_uploader(self, guard, resolver, make_document, uploader, second_uploader):
        """Test two uploaders in one branch never see each other's drafts"""
        draft = make_document(DocumentStatus.DRAFT, owner=uploader)
        sent = make_document(DocumentStatus.SENT_TO_BRANCH, owner=uploader)

        assert guard.can_access_document(uploader, draft, resolver.resolve(uploader.id))
        assert not guard.can_access_document(second_uploader, draft, resolver.resolve(second_uploader.id))
        assert guard.can_access_document(second_uploader, sent, resolver.resolve(second_uploader.id))

    def test_branch_user_cannot_see_branch_draft(self, guard, resolver, make_document, branch_user):
        draft = make_document(DocumentStatus.DRAFT, ba_code=BRANCH_A)

        assert not guard.can_access_document(branch_user, draft, resolver.resolve(branch_user.id))

    def test_district_manager_sees_drafts(self, guard, resolver, make_document, district_manager):
        draft = make_document(DocumentStatus.DRAFT, ba_code=BRANCH_B)

        assert guard.can_access_document(district_manager, draft, resolver.resolve(district_manager.id))


class TestCanUserAccessDocument:
    def test_resolves_afresh(self, guard, make_document, branch_user, other_branch_user):
        document = make_document(DocumentStatus.ACKNOWLEDGED, ba_code=BRANCH_A)

        assert guard.can_user_access_document(branch_user.id, document.id) is True
        assert guard.can_user_access_document(other_branch_user.id, document.id) is False

    def test_missing_document(self, guard, branch_user):
        with pytest.raises(NotFound):
            guard.can_user_access_document(branch_user.id, 424242)
