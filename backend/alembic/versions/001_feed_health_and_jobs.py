"""Feed health, feed metrics, news articles and engagements

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'feed_health',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('feed_key', sa.String(128), nullable=False),
        sa.Column('health_status', sa.Enum('healthy', 'degraded', 'failing', 'disabled', name='healthstatus'), nullable=False, server_default='healthy'),
        sa.Column('consecutive_failures', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_successful_fetch', sa.DateTime(), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('last_error_at', sa.DateTime(), nullable=True),
        sa.Column('success_rate_24h', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('success_rate_7d', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('auto_disabled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_feed_health_id', 'feed_health', ['id'])
    op.create_index('ix_feed_health_feed_key', 'feed_health', ['feed_key'], unique=True)

    op.create_table(
        'feed_metrics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('feed_key', sa.String(128), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('duration_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('articles_fetched', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('articles_inserted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('articles_skipped', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('error_type', sa.String(50), nullable=True),
        sa.Column('fetch_timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_feed_metrics_id', 'feed_metrics', ['id'])
    op.create_index('ix_feed_metrics_feed_key', 'feed_metrics', ['feed_key'])
    op.create_index('ix_feed_metrics_feed_key_fetch_timestamp', 'feed_metrics', ['feed_key', 'fetch_timestamp'])

    op.create_table(
        'news_articles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('source', sa.String(128), nullable=False),
        sa.Column('guid', sa.String(1024), nullable=True),
        sa.Column('link', sa.String(2048), nullable=False, unique=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('author', sa.String(256), nullable=True),
        sa.Column('categories', sa.JSON(), nullable=True),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('thumbnail_url', sa.String(2048), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('fetched_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_news_articles_id', 'news_articles', ['id'])
    op.create_index('ix_news_articles_source', 'news_articles', ['source'])

    op.create_table(
        'engagements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(256), nullable=False),
        sa.Column('client_name', sa.String(256), nullable=False),
        sa.Column('client_industry', sa.String(128), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('engagement_type', sa.String(32), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='active'),
        sa.Column('technologies', sa.JSON(), nullable=True),
        sa.Column('deliverables', sa.JSON(), nullable=True),
        sa.Column('budget', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('ai_insights', sa.JSON(), nullable=True),
        sa.Column('risk_assessment', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_engagements_id', 'engagements', ['id'])
    op.create_index('ix_engagements_status', 'engagements', ['status'])


def downgrade():
    op.drop_table('engagements')
    op.drop_table('news_articles')
    op.drop_table('feed_metrics')
    op.drop_table('feed_health')
    sa.Enum(name='healthstatus').drop(op.get_bind(), checkfirst=True)
