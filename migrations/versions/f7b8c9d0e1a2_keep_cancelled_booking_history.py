"""keep cancelled booking history when slots are deleted

Revision ID: f7b8c9d0e1a2
Revises: e1a2b3c4d5f6
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'f7b8c9d0e1a2'
down_revision = 'e1a2b3c4d5f6'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.alter_column('slot_id', existing_type=sa.Integer(), nullable=True)
        batch_op.add_column(sa.Column('slot_start_time', sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column('slot_end_time', sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column('slot_location', sa.String(length=160), nullable=True))

    op.execute(
        "UPDATE bookings SET "
        "slot_start_time = (SELECT start_time FROM slots WHERE slots.id = bookings.slot_id), "
        "slot_end_time = (SELECT end_time FROM slots WHERE slots.id = bookings.slot_id), "
        "slot_location = (SELECT location FROM slots WHERE slots.id = bookings.slot_id) "
        "WHERE cancelled_at IS NOT NULL"
    )


def downgrade():
    op.execute("DELETE FROM bookings WHERE slot_id IS NULL")
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.drop_column('slot_location')
        batch_op.drop_column('slot_end_time')
        batch_op.drop_column('slot_start_time')
        batch_op.alter_column('slot_id', existing_type=sa.Integer(), nullable=False)
