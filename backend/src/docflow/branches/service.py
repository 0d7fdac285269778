"""Read-only branch metadata lookups."""

from typing import List, Optional

from ..domain.ports import DocflowRepositoryPort
from ..domain.records import BranchRecord, UserRecord


class BranchService:
    """Branch lookups over the repository port."""

    def __init__(self, repository: DocflowRepositoryPort):
        self.repository = repository

    def get_branch_by_ba_code(self, ba_code: int) -> Optional[BranchRecord]:
        return self.repository.get_branch_by_ba_code(ba_code)

    def get_user_branch(self, user: UserRecord) -> Optional[BranchRecord]:
        """Active branch of ``user`` (BA code first, cost centre fallback), or None."""
        ba_code = user.branch_ba_code
        if ba_code is None:
            return None
        return self.repository.get_branch_by_ba_code(ba_code)

    def list_branches(self) -> List[BranchRecord]:
        return self.repository.list_active_branches()

    def branch_name(self, ba_code: int) -> Optional[str]:
        branch = self.repository.get_branch_by_ba_code(ba_code)
        return branch.name if branch else None
