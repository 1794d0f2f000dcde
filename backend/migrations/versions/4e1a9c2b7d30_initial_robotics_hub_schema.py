"""initial robotics hub schema

Revision ID: 4e1a9c2b7d30
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4e1a9c2b7d30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'sources',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sources_url'), 'sources', ['url'], unique=True)

    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('website', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('summary_ai', sa.Text(), nullable=True),
        sa.Column('last_seen_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_companies_name'), 'companies', ['name'], unique=True)

    op.create_table(
        'raw_news',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('title_raw', sa.Text(), nullable=False),
        sa.Column('content_raw', sa.Text(), nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=False),
        sa.Column('ingested_at', sa.DateTime(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False),
        sa.Column('enrich_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['source_id'], ['sources.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_raw_news_source_id'), 'raw_news', ['source_id'], unique=False)
    op.create_index(op.f('ix_raw_news_url'), 'raw_news', ['url'], unique=True)
    op.create_index(op.f('ix_raw_news_processed'), 'raw_news', ['processed'], unique=False)

    op.create_table(
        'articles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('summary_ai', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('robot_tags', sa.JSON(), nullable=False),
        sa.Column('importance_score', sa.Integer(), nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['source_id'], ['sources.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url'),
    )
    op.create_index(op.f('ix_articles_source_id'), 'articles', ['source_id'], unique=False)
    op.create_index(op.f('ix_articles_company_id'), 'articles', ['company_id'], unique=False)
    op.create_index(op.f('ix_articles_category'), 'articles', ['category'], unique=False)
    op.create_index(op.f('ix_articles_published_at'), 'articles', ['published_at'], unique=False)

    op.create_table(
        'token_snapshots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('coingecko_id', sa.String(), nullable=False),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('price_usd', sa.Float(), nullable=False),
        sa.Column('market_cap_usd', sa.Float(), nullable=False),
        sa.Column('volume_24h_usd', sa.Float(), nullable=False),
        sa.Column('change_1h_pct', sa.Float(), nullable=False),
        sa.Column('change_24h_pct', sa.Float(), nullable=False),
        sa.Column('change_7d_pct', sa.Float(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('taken_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_token_snapshots_taken_at'), 'token_snapshots', ['taken_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_token_snapshots_taken_at'), table_name='token_snapshots')
    op.drop_table('token_snapshots')
    op.drop_index(op.f('ix_articles_published_at'), table_name='articles')
    op.drop_index(op.f('ix_articles_category'), table_name='articles')
    op.drop_index(op.f('ix_articles_company_id'), table_name='articles')
    op.drop_index(op.f('ix_articles_source_id'), table_name='articles')
    op.drop_table('articles')
    op.drop_index(op.f('ix_raw_news_processed'), table_name='raw_news')
    op.drop_index(op.f('ix_raw_news_url'), table_name='raw_news')
    op.drop_index(op.f('ix_raw_news_source_id'), table_name='raw_news')
    op.drop_table('raw_news')
    op.drop_index(op.f('ix_companies_name'), table_name='companies')
    op.drop_table('companies')
    op.drop_index(op.f('ix_sources_url'), table_name='sources')
    op.drop_table('sources')
