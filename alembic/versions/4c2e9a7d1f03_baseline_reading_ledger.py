"""baseline reading ledger schema

Revision ID: 4c2e9a7d1f03
Revises: 
Create Date: 2026-10-18 09:12:44.512907

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy.engine import Connection

from pageturn.database import Base

# revision identifiers, used by Alembic.
revision: str = "4c2e9a7d1f03"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, catalog, ledger, mark and coin tables from the current metadata."""
    bind: Connection = op.get_bind()
    Base.metadata.create_all(bind)


def downgrade() -> None:
    """Drop all database objects managed by the metadata."""
    bind: Connection = op.get_bind()
    Base.metadata.drop_all(bind)
