"""Create users, tasks and user_pending_tasks

Revision ID: 5e1a7c3d9b20
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5e1a7c3d9b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("date_created", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("deadline", sa.DateTime(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("assigned_user", sa.String(), nullable=False, server_default=""),
        sa.Column("assigned_user_name", sa.String(), nullable=False, server_default="unassigned"),
        sa.Column("date_created", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_tasks_assigned_user"), "tasks", ["assigned_user"], unique=False)

    op.create_table(
        "user_pending_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("user_id", "task_id", name="uq_user_pending_task"),
    )
    op.create_index(op.f("ix_user_pending_tasks_user_id"), "user_pending_tasks", ["user_id"], unique=False)
    op.create_index(op.f("ix_user_pending_tasks_task_id"), "user_pending_tasks", ["task_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_user_pending_tasks_task_id"), table_name="user_pending_tasks")
    op.drop_index(op.f("ix_user_pending_tasks_user_id"), table_name="user_pending_tasks")
    op.drop_table("user_pending_tasks")
    op.drop_index(op.f("ix_tasks_assigned_user"), table_name="tasks")
    op.drop_table("tasks")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
