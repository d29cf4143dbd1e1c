"""Initial schema: plans, subscriptions, teams, webhook log

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # =========================================================================
    # 1. SUBSCRIPTION_PLANS (Public Read)
    # =========================================================================
    op.create_table(
        'subscription_plans',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('price_monthly', sa.Float, nullable=False, server_default='0'),
        sa.Column('plan_type', sa.String(20), nullable=False, server_default='individual'),
        sa.Column('features', sa.JSON),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        sa.Column('stripe_price_id', sa.String(255)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_subscription_plans_is_active', 'subscription_plans', ['is_active'])

    # =========================================================================
    # 2. USER_PROFILES (User-owned, display only)
    # =========================================================================
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('full_name', sa.String(200)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # =========================================================================
    # 3. SUBSCRIPTIONS
    # =========================================================================
    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column(
            'plan_id',
            sa.String(64),
            sa.ForeignKey('subscription_plans.id'),
        ),

        # Stripe IDs
        sa.Column('stripe_subscription_id', sa.String(255), unique=True, index=True),
        sa.Column('stripe_customer_id', sa.String(255), index=True),

        sa.Column('status', sa.String(32), server_default='inactive', nullable=False, index=True),

        # Billing period dates
        sa.Column('current_period_start', sa.DateTime(timezone=True)),
        sa.Column('current_period_end', sa.DateTime(timezone=True)),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # =========================================================================
    # 4. TEAM_MEMBERSHIPS
    # =========================================================================
    op.create_table(
        'team_memberships',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'subscription_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('subscriptions.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'subscription_id', 'user_id', name='uq_team_memberships_subscription_user'
        ),
    )

    # =========================================================================
    # 5. TEAM_INVITATIONS
    # =========================================================================
    op.create_table(
        'team_invitations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'subscription_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('subscriptions.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('invited_email', sa.String(320), nullable=False),
        sa.Column('invited_by', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    # At most one pending invitation per address and team
    op.create_index(
        'uq_team_invitations_pending_email',
        'team_invitations',
        ['subscription_id', 'invited_email'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    # =========================================================================
    # 6. PROCESSED_WEBHOOK_EVENTS (internal only)
    # =========================================================================
    op.create_table(
        'processed_webhook_events',
        sa.Column('event_id', sa.String(255), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column(
            'processed_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    )
    # Index for cleanup queries (delete events older than X days)
    op.create_index(
        'ix_processed_webhook_events_processed_at',
        'processed_webhook_events',
        ['processed_at'],
    )

    # =========================================================================
    # Row Level Security
    # The backend connects as the service role; these policies govern direct
    # Supabase client access from the browser.
    # =========================================================================
    for table in (
        'subscription_plans',
        'user_profiles',
        'subscriptions',
        'team_memberships',
        'team_invitations',
        'processed_webhook_events',
    ):
        op.execute(f'ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY')

    op.execute("""
        CREATE POLICY subscription_plans_select_policy ON public.subscription_plans
        FOR SELECT USING (true)
    """)

    op.execute("""
        CREATE POLICY user_profiles_select_policy ON public.user_profiles
        FOR SELECT TO authenticated USING (true)
    """)
    op.execute("""
        CREATE POLICY user_profiles_update_policy ON public.user_profiles
        FOR UPDATE TO authenticated
        USING (id = auth.uid()::text) WITH CHECK (id = auth.uid()::text)
    """)

    op.execute("""
        CREATE POLICY subscriptions_select_policy ON public.subscriptions
        FOR SELECT TO authenticated
        USING (
            user_id = auth.uid()::text
            OR id IN (
                SELECT subscription_id FROM public.team_memberships
                WHERE user_id = auth.uid()::text AND status = 'active'
            )
        )
    """)

    op.execute("""
        CREATE POLICY team_memberships_select_policy ON public.team_memberships
        FOR SELECT TO authenticated
        USING (
            subscription_id IN (
                SELECT subscription_id FROM public.team_memberships
                WHERE user_id = auth.uid()::text AND status = 'active'
            )
        )
    """)

    op.execute("""
        CREATE POLICY team_invitations_admin_policy ON public.team_invitations
        FOR ALL TO authenticated
        USING (
            subscription_id IN (
                SELECT subscription_id FROM public.team_memberships
                WHERE user_id = auth.uid()::text AND role = 'admin' AND status = 'active'
            )
        )
        WITH CHECK (
            subscription_id IN (
                SELECT subscription_id FROM public.team_memberships
                WHERE user_id = auth.uid()::text AND role = 'admin' AND status = 'active'
            )
        )
    """)

    for table in ('subscriptions', 'team_memberships', 'team_invitations', 'processed_webhook_events'):
        op.execute(f"""
            CREATE POLICY {table}_service_role_policy ON public.{table}
            FOR ALL TO service_role
            USING (true)
            WITH CHECK (true)
        """)


def downgrade() -> None:
    op.drop_index('ix_processed_webhook_events_processed_at', table_name='processed_webhook_events')
    op.drop_table('processed_webhook_events')
    op.drop_index('uq_team_invitations_pending_email', table_name='team_invitations')
    op.drop_table('team_invitations')
    op.drop_table('team_memberships')
    op.drop_table('subscriptions')
    op.drop_table('user_profiles')
    op.drop_index('ix_subscription_plans_is_active', table_name='subscription_plans')
    op.drop_table('subscription_plans')
