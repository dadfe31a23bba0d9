"""Enforce at most one cached summary/quiz per material."""
import sqlalchemy as sa
from alembic import op

revision = "20261019_generated_content_cache_key"
down_revision = None
branch_labels = None
depends_on = None

_CACHED_TYPES = sa.text("type IN ('summary', 'questions')")


def upgrade() -> None:
    # Keep the earliest row of any duplicates produced by concurrent generation
    op.execute(
        "DELETE FROM generated_content WHERE type IN ('summary', 'questions') AND id NOT IN ("
        "SELECT MIN(id) FROM generated_content WHERE type IN ('summary', 'questions') "
        "GROUP BY material_id, type)"
    )
    op.create_index(
        "uq_generated_content_cache_key",
        "generated_content",
        ["material_id", "type"],
        unique=True,
        sqlite_where=_CACHED_TYPES,
        postgresql_where=_CACHED_TYPES,
    )
    op.create_index(
        "ix_generated_content_material",
        "generated_content",
        ["material_id", "created_at"],
    )
    op.create_index(
        "ix_materials_user_created",
        "materials",
        ["user_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_materials_user_created", table_name="materials")
    op.drop_index("ix_generated_content_material", table_name="generated_content")
    op.drop_index("uq_generated_content_cache_key", table_name="generated_content")
