#!/usr/bin/env python
"""Seed built-in roles, permissions and the R6 branch list.

Safe to run repeatedly. Optionally creates the tables first and promotes a
local administrator account.

Usage:
    python backend/scripts/seed_roles.py [--create-tables]

Environment Variables:
    DATABASE_URL: Database connection string
    ADMIN_USERNAME: If set, this user is created (if missing), flagged as a
        local administrator and given the admin role
"""

import argparse
import os
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from docflow.database import get_db_session, get_engine
from docflow.domain.roles import RoleName
from docflow.errors import DocflowError
from docflow.infrastructure.repositories.sqlalchemy_repository import SqlAlchemyDocflowRepository
from docflow.models import Base
from docflow.roles.seed import seed_branches, seed_roles_and_permissions


def promote_admin(repository: SqlAlchemyDocflowRepository, username: str) -> None:
    with repository.transaction():
        user, created = repository.upsert_user(username, {"is_local_admin": True})
        admin_role = repository.get_role_by_name(RoleName.ADMIN.value)
        repository.add_user_role(user.id, admin_role.id)
    print(f"  Admin: {user.username} (id {user.id}, {'created' if created else 'existing'})")


def main():
    """Seed roles, permissions and branches."""
    parser = argparse.ArgumentParser(description="Seed DocFlow roles, permissions and branches")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=get_engine())
        print("Tables created")

    admin_username = os.getenv("ADMIN_USERNAME")

    try:
        with get_db_session() as session:
            repository = SqlAlchemyDocflowRepository(session)
            counts = seed_roles_and_permissions(repository)
            branch_count = seed_branches(repository)

            print("SUCCESS: Seed complete")
            print(f"  Roles:       {counts['roles']}")
            print(f"  Permissions: {counts['permissions']}")
            print(f"  Branches:    {branch_count}")

            if admin_username:
                promote_admin(repository, admin_username.strip())

    except DocflowError as e:
        print(f"ERROR: Seeding failed: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
