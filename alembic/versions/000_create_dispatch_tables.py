"""Create dispatch tables (jobs, crew_members, availability_blocks, locations)

Revision ID: 000_create_dispatch_tables
Revises:
Create Date: 2026-03-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '000_create_dispatch_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'jobs',
        sa.Column('id', sa.String(36), primary_key=True, index=True),
        sa.Column('contractor_id', sa.String(36), nullable=False, index=True),
        sa.Column('title', sa.String(255)),
        sa.Column('category', sa.String(100)),
        sa.Column('complexity', sa.String(20)),
        sa.Column('notes', sa.Text()),
        sa.Column('estimated_duration_minutes', sa.Integer()),
        sa.Column('scheduled_start', sa.DateTime()),
        sa.Column('multi_day_schedule', sa.JSON()),
        sa.Column('required_crew_size', sa.Integer()),
        sa.Column('preferred_tech_id', sa.String(36)),
        sa.Column('site_latitude', sa.Float()),
        sa.Column('site_longitude', sa.Float()),
        sa.Column('assigned_crew', sa.JSON()),
        sa.Column('crew_size', sa.Integer(), server_default='0'),
        sa.Column('assigned_by', sa.String(20)),
        sa.Column('assigned_at', sa.DateTime(timezone=True)),
        sa.Column('assigned_tech_id', sa.String(36), index=True),
        sa.Column('assigned_tech_name', sa.String(200)),
        sa.Column('assigned_vehicle_id', sa.String(36)),
        sa.Column('assigned_vehicle_name', sa.String(100)),
        sa.Column('field_status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('field_status_history', sa.JSON()),
        sa.Column('live_eta', sa.JSON()),
        sa.Column('en_route_at', sa.DateTime(timezone=True)),
        sa.Column('arrived_at', sa.DateTime(timezone=True)),
        sa.Column('work_started_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('cancelled_at', sa.DateTime(timezone=True)),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'crew_members',
        sa.Column('id', sa.String(36), primary_key=True, index=True),
        sa.Column('contractor_id', sa.String(36), nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(20)),
        sa.Column('color', sa.String(7), server_default='#64748B'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('working_hours', sa.JSON()),
        sa.Column('skills', sa.JSON()),
        sa.Column('max_jobs_per_day', sa.Integer(), server_default='4'),
        sa.Column('seniority_level', sa.String(30), server_default='technician'),
        sa.Column('time_off', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'availability_blocks',
        sa.Column('id', sa.String(36), primary_key=True, index=True),
        sa.Column('contractor_id', sa.String(36), nullable=False),
        sa.Column('tech_id', sa.String(36), nullable=False),
        sa.Column('type', sa.String(30), nullable=False, server_default='personal'),
        sa.Column('title', sa.String(200)),
        sa.Column('notes', sa.Text()),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5)),
        sa.Column('end_time', sa.String(5)),
        sa.Column('is_all_day', sa.Boolean(), server_default=sa.true()),
        sa.Column('is_recurring', sa.Boolean(), server_default=sa.false()),
        sa.Column('recurrence_rule', sa.String(200)),
        sa.Column('google_event_id', sa.String(255)),
        sa.Column('source', sa.String(20), server_default='manual'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_by', sa.String(36)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_availability_contractor_status', 'availability_blocks', ['contractor_id', 'status'])
    op.create_index('idx_availability_tech', 'availability_blocks', ['tech_id'])

    op.create_table(
        'technician_locations',
        sa.Column('technician_id', sa.String(36), primary_key=True),
        sa.Column('contractor_id', sa.String(36), nullable=False, index=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('heading', sa.Float(), nullable=True),
        sa.Column('is_online', sa.Boolean(), server_default=sa.true()),
        sa.Column('current_job_id', sa.String(36), nullable=True),
        sa.Column('captured_at', sa.DateTime(), nullable=False),
        sa.Column('received_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('idx_tech_location_coords', 'technician_locations', ['latitude', 'longitude'])

    op.create_table(
        'location_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('technician_id', sa.String(36), nullable=False),
        sa.Column('job_id', sa.String(36), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('heading', sa.Float(), nullable=True),
        sa.Column('distance_from_previous', sa.Float(), nullable=True),
        sa.Column('captured_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_location_history_tech_time', 'location_history', ['technician_id', 'captured_at'])


def downgrade():
    op.drop_index('idx_location_history_tech_time', table_name='location_history')
    op.drop_table('location_history')
    op.drop_index('idx_tech_location_coords', table_name='technician_locations')
    op.drop_table('technician_locations')
    op.drop_index('idx_availability_tech', table_name='availability_blocks')
    op.drop_index('idx_availability_contractor_status', table_name='availability_blocks')
    op.drop_table('availability_blocks')
    op.drop_table('crew_members')
    op.drop_table('jobs')
