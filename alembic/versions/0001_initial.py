"""Initial schema: organizations, accounts, competency library, job profiles, evaluations

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-16 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    ]


def _org():
    return sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False, index=True)


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('address', sa.String(255)),
        sa.Column('city', sa.String(120)),
        sa.Column('postal_code', sa.String(20)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'job_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer()),
        *_timestamps(),
    )
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False, index=True),
        sa.Column('first_name', sa.String(120), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(120), nullable=False, server_default=''),
        sa.Column('role', sa.String(20), nullable=False, server_default='worker', index=True),
        sa.Column('job_title', sa.String(200)),
        sa.Column('avatar_url', sa.String(512)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('manager_id', sa.Integer(), sa.ForeignKey('profiles.id'), index=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id')),
        sa.Column('job_profile_id', sa.Integer(), sa.ForeignKey('job_profiles.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_table(
        'modules',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE')),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('icon', sa.String(50)),
        sa.Column('color', sa.String(20)),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer()),
        *_timestamps(),
    )
    op.create_table(
        'competencies',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('external_id', sa.String(64)),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer()),
        *_timestamps(),
    )
    op.create_table(
        'qualifiers',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('qualifier_type', sa.String(20), nullable=False, server_default='single_choice'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer()),
        *_timestamps(),
    )
    op.create_table(
        'qualifier_options',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('qualifier_id', sa.Integer(), sa.ForeignKey('qualifiers.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('label', sa.String(200), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('icon', sa.String(50)),
        sa.Column('color', sa.String(20)),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_table(
        'module_qualifiers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qualifier_id', sa.Integer(), sa.ForeignKey('qualifiers.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('module_id', 'qualifier_id', name='uq_module_qualifiers'),
    )
    op.create_table(
        'job_profile_modules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('job_profile_id', sa.Integer(), sa.ForeignKey('job_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expected_score', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('job_profile_id', 'module_id', name='uq_job_profile_modules'),
    )
    op.create_table(
        'job_profile_competency_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('job_profile_id', sa.Integer(), sa.ForeignKey('job_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('competency_id', sa.Integer(), sa.ForeignKey('competencies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('weight', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('expected_score', sa.Integer(), nullable=False, server_default='70'),
        *_timestamps(),
        sa.UniqueConstraint('job_profile_id', 'competency_id', name='uq_job_profile_competency_settings'),
    )
    op.create_table(
        'job_profile_qualifiers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('job_profile_id', sa.Integer(), sa.ForeignKey('job_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qualifier_id', sa.Integer(), sa.ForeignKey('qualifiers.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('job_profile_id', 'qualifier_id', name='uq_job_profile_qualifiers'),
    )
    op.create_table(
        'worker_job_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('worker_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('job_profile_id', sa.Integer(), sa.ForeignKey('job_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_evaluator_id', sa.Integer(), sa.ForeignKey('profiles.id')),
        *_timestamps(),
        sa.UniqueConstraint('worker_id', 'job_profile_id', name='uq_worker_job_profiles'),
    )
    op.create_table(
        'evaluations',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('evaluator_id', sa.Integer(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('worker_id', sa.Integer(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('job_profile_id', sa.Integer(), sa.ForeignKey('job_profiles.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255)),
        sa.Column('notes', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('is_continuous', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('evaluated_at', sa.DateTime()),
        *_timestamps(),
    )
    op.create_table(
        'evaluation_results',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('evaluation_id', sa.Integer(), sa.ForeignKey('evaluations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('competency_id', sa.Integer(), sa.ForeignKey('competencies.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('evaluation_id', 'competency_id', name='uq_evaluation_results'),
    )
    op.create_table(
        'evaluation_result_qualifiers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('evaluation_result_id', sa.Integer(), sa.ForeignKey('evaluation_results.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qualifier_id', sa.Integer(), sa.ForeignKey('qualifiers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qualifier_option_id', sa.Integer(), sa.ForeignKey('qualifier_options.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        'evaluation_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('evaluation_id', sa.Integer(), sa.ForeignKey('evaluations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('snapshot_by', sa.Integer(), sa.ForeignKey('profiles.id')),
        sa.Column('scores', sa.JSON()),
        sa.Column('module_scores', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        'evaluation_comments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('evaluation_id', sa.Integer(), sa.ForeignKey('evaluations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        'worker_comments',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('worker_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        _org(),
        sa.Column('key', sa.String(128), nullable=False, index=True),
        sa.Column('value', sa.JSON()),
        sa.Column('updated_by', sa.Integer()),
        *_timestamps(),
        sa.UniqueConstraint('org_id', 'key', name='uq_settings_org_key'),
    )


def downgrade() -> None:
    for table in ('settings', 'worker_comments', 'evaluation_comments', 'evaluation_snapshots',
                  'evaluation_result_qualifiers', 'evaluation_results', 'evaluations',
                  'worker_job_profiles', 'job_profile_qualifiers', 'job_profile_competency_settings',
                  'job_profile_modules', 'module_qualifiers', 'qualifier_options', 'qualifiers',
                  'competencies', 'modules', 'profiles', 'job_profiles', 'locations', 'users',
                  'organizations'):
        op.drop_table(table)
