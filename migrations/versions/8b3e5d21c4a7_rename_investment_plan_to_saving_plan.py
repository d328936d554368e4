"""Rename profiles.investment_plan to saving_plan (add it when neither exists)"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8b3e5d21c4a7'
down_revision = '4f1c2a9d7e01'
branch_labels = None
depends_on = None

SAVING_PLAN_LABEL = '₹1000 per month for 20 months'


def _profile_columns():
    return {column['name'] for column in sa.inspect(op.get_bind()).get_columns('profiles')}


def upgrade():
    columns = _profile_columns()

    if 'investment_plan' in columns and 'saving_plan' not in columns:
        with op.batch_alter_table('profiles', schema=None) as batch_op:
            batch_op.alter_column('investment_plan', new_column_name='saving_plan',
                                  existing_type=sa.String(length=255))
    elif 'saving_plan' not in columns:
        with op.batch_alter_table('profiles', schema=None) as batch_op:
            batch_op.add_column(sa.Column('saving_plan', sa.String(length=255), nullable=True))

    op.get_bind().execute(
        sa.text("UPDATE profiles SET saving_plan = :label WHERE role = 'customer' AND saving_plan IS NULL"),
        {"label": SAVING_PLAN_LABEL},
    )


def downgrade():
    with op.batch_alter_table('profiles', schema=None) as batch_op:
        batch_op.alter_column('saving_plan', new_column_name='investment_plan',
                              existing_type=sa.String(length=255))
