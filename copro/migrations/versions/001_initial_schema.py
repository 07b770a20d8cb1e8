"""Initial schema: buildings, owners, exercises, recurring charges and billing calls.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create charge catalog and billing tables."""
    # Create buildings table
    op.create_table(
        'buildings',
        *_base_columns(),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('adresse', sa.String(500), nullable=True),
        sa.Column('nombre_total_parts', sa.Numeric(precision=10, scale=2), nullable=False,
                  comment='Nominal millieme basis of the building'),
        sa.PrimaryKeyConstraint('id'),
    )

    # Create owners table
    op.create_table(
        'owners',
        *_base_columns(),
        sa.Column('building_id', sa.Integer(), nullable=False),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('prenom', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('milliemes', sa.Numeric(precision=10, scale=2), nullable=False,
                  comment='Share of the building used for millieme repartition'),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_owners_building_id', 'owners', ['building_id'])
    op.create_index('idx_owner_building_nom', 'owners', ['building_id', 'nom'])

    # Create exercises table
    op.create_table(
        'exercises',
        *_base_columns(),
        sa.Column('building_id', sa.Integer(), nullable=False),
        sa.Column('annee', sa.Integer(), nullable=False),
        sa.Column('date_debut', sa.Date(), nullable=False),
        sa.Column('date_fin', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('building_id', 'annee', name='uq_exercise_building_year'),
    )
    op.create_index('ix_exercises_building_id', 'exercises', ['building_id'])

    # Create charge_definitions table
    op.create_table(
        'charge_definitions',
        *_base_columns(),
        sa.Column('building_id', sa.Integer(), nullable=False),
        sa.Column('exercise_id', sa.Integer(), nullable=True),
        sa.Column(
            'type',
            sa.Enum('fonds_roulement', 'fonds_reserve', 'charges_generales', 'charges_speciales',
                    'frais_administration', name='chargetype'),
            nullable=False,
        ),
        sa.Column('libelle', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('montant_annuel', sa.Numeric(precision=12, scale=2), nullable=False,
                  comment='Annual amount in euros'),
        sa.Column(
            'frequence',
            sa.Enum('mensuel', 'trimestriel', 'semestriel', 'annuel', name='frequency'),
            nullable=False,
        ),
        sa.Column(
            'cle_repartition',
            sa.Enum('milliemes', 'egalitaire', 'custom', name='repartitionkey'),
            nullable=False,
        ),
        sa.Column('actif', sa.Boolean(), nullable=False),
        sa.Column('date_debut', sa.Date(), nullable=True),
        sa.Column('date_fin', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercises.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_charge_definitions_building_id', 'charge_definitions', ['building_id'])
    op.create_index('ix_charge_definitions_exercise_id', 'charge_definitions', ['exercise_id'])
    op.create_index('idx_charge_building_actif', 'charge_definitions', ['building_id', 'actif'])

    # Create charge_exclusions table
    op.create_table(
        'charge_exclusions',
        *_base_columns(),
        sa.Column('charge_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('motif', sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(['charge_id'], ['charge_definitions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_id'], ['owners.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('charge_id', 'owner_id', name='uq_exclusion_charge_owner'),
    )
    op.create_index('ix_charge_exclusions_charge_id', 'charge_exclusions', ['charge_id'])
    op.create_index('ix_charge_exclusions_owner_id', 'charge_exclusions', ['owner_id'])

    # Create custom_quotas table
    op.create_table(
        'custom_quotas',
        *_base_columns(),
        sa.Column('charge_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('quote_part', sa.Numeric(precision=8, scale=4), nullable=False),
        sa.ForeignKeyConstraint(['charge_id'], ['charge_definitions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_id'], ['owners.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('charge_id', 'owner_id', name='uq_quota_charge_owner'),
    )
    op.create_index('ix_custom_quotas_charge_id', 'custom_quotas', ['charge_id'])
    op.create_index('ix_custom_quotas_owner_id', 'custom_quotas', ['owner_id'])

    # Create billing_calls table
    op.create_table(
        'billing_calls',
        *_base_columns(),
        sa.Column('charge_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('exercise_id', sa.Integer(), nullable=True),
        sa.Column('periode_debut', sa.Date(), nullable=False),
        sa.Column('periode_fin', sa.Date(), nullable=False),
        sa.Column('montant_appele', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('montant_paye', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            'payment_state',
            sa.Enum('unpaid', 'partial', 'paid', name='paymentstate'),
            nullable=False,
        ),
        sa.Column('date_echeance', sa.Date(), nullable=False),
        sa.Column('date_paiement', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reference_paiement', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['charge_id'], ['charge_definitions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_id'], ['owners.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercises.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('charge_id', 'owner_id', 'periode_debut', 'periode_fin',
                            name='uq_billing_call_charge_owner_period'),
    )
    op.create_index('ix_billing_calls_charge_id', 'billing_calls', ['charge_id'])
    op.create_index('ix_billing_calls_owner_id', 'billing_calls', ['owner_id'])
    op.create_index('ix_billing_calls_exercise_id', 'billing_calls', ['exercise_id'])
    op.create_index('idx_billing_call_period', 'billing_calls', ['periode_debut', 'periode_fin'])
    op.create_index('idx_billing_call_state', 'billing_calls', ['payment_state'])

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        *_base_columns(),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    """Drop charge catalog and billing tables."""
    op.drop_table('audit_logs')
    op.drop_index('idx_billing_call_state', table_name='billing_calls')
    op.drop_index('idx_billing_call_period', table_name='billing_calls')
    op.drop_index('ix_billing_calls_exercise_id', table_name='billing_calls')
    op.drop_index('ix_billing_calls_owner_id', table_name='billing_calls')
    op.drop_index('ix_billing_calls_charge_id', table_name='billing_calls')
    op.drop_table('billing_calls')
    op.drop_index('ix_custom_quotas_owner_id', table_name='custom_quotas')
    op.drop_index('ix_custom_quotas_charge_id', table_name='custom_quotas')
    op.drop_table('custom_quotas')
    op.drop_index('ix_charge_exclusions_owner_id', table_name='charge_exclusions')
    op.drop_index('ix_charge_exclusions_charge_id', table_name='charge_exclusions')
    op.drop_table('charge_exclusions')
    op.drop_index('idx_charge_building_actif', table_name='charge_definitions')
    op.drop_index('ix_charge_definitions_exercise_id', table_name='charge_definitions')
    op.drop_index('ix_charge_definitions_building_id', table_name='charge_definitions')
    op.drop_table('charge_definitions')
    op.drop_index('ix_exercises_building_id', table_name='exercises')
    op.drop_table('exercises')
    op.drop_index('idx_owner_building_nom', table_name='owners')
    op.drop_index('ix_owners_building_id', table_name='owners')
    op.drop_table('owners')
    op.drop_table('buildings')
    sa.Enum(name='paymentstate').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='repartitionkey').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='frequency').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='chargetype').drop(op.get_bind(), checkfirst=True)
