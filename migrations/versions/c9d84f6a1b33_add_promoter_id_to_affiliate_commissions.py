"""Add promoter_id to affiliate_commissions, backfilled from initiator_promoter_id"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c9d84f6a1b33'
down_revision = '8b3e5d21c4a7'
branch_labels = None
depends_on = None


def upgrade():
    columns = {column['name'] for column in sa.inspect(op.get_bind()).get_columns('affiliate_commissions')}

    if 'promoter_id' not in columns:
        with op.batch_alter_table('affiliate_commissions', schema=None) as batch_op:
            batch_op.add_column(sa.Column('promoter_id', sa.String(length=36), nullable=True))
            batch_op.create_foreign_key('fk_affiliate_commissions_promoter_id', 'profiles',
                                        ['promoter_id'], ['id'], ondelete='CASCADE')
            batch_op.create_index('ix_affiliate_commissions_promoter_id', ['promoter_id'])

    op.execute(
        "UPDATE affiliate_commissions SET promoter_id = initiator_promoter_id "
        "WHERE promoter_id IS NULL AND initiator_promoter_id IS NOT NULL;"
    )


def downgrade():
    with op.batch_alter_table('affiliate_commissions', schema=None) as batch_op:
        batch_op.drop_index('ix_affiliate_commissions_promoter_id')
        batch_op.drop_constraint('fk_affiliate_commissions_promoter_id', type_='foreignkey')
        batch_op.drop_column('promoter_id')
