"""arrival core tables

Revision ID: 0001_arrival_core
Revises:
Create Date: 2026-10-18T00:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_arrival_core"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "arrival_schedule",
        sa.Column("id", sa.String(length=36), primary_key=True),
        *_timestamps(),
        sa.Column("bp_code", sa.String(length=25), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False, server_default="regular"),
        sa.Column("day_name", sa.String(length=16), nullable=True),
        sa.Column("schedule_date", sa.Date(), nullable=True),
        sa.Column("arrival_time", sa.Time(), nullable=True),
        sa.Column("departure_time", sa.Time(), nullable=True),
        sa.Column("dock", sa.String(length=25), nullable=True),
    )
    op.create_index("ix_arrival_schedule_bp_code", "arrival_schedule", ["bp_code"])
    op.create_index("ix_arrival_schedule_kind", "arrival_schedule", ["kind"])
    op.create_index("ix_arrival_schedule_day_name", "arrival_schedule", ["day_name"])
    op.create_index("ix_arrival_schedule_schedule_date", "arrival_schedule", ["schedule_date"])
    op.create_index("ix_schedule_lookup", "arrival_schedule", ["bp_code", "day_name", "kind"])

    op.create_table(
        "arrival_transaction",
        sa.Column("id", sa.String(length=36), primary_key=True),
        *_timestamps(),
        sa.Column("dn_number", sa.String(length=25), nullable=False),
        sa.Column("po_number", sa.String(length=25), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False, server_default="regular"),
        sa.Column("plan_delivery_date", sa.Date(), nullable=True),
        sa.Column("plan_delivery_time", sa.Time(), nullable=True),
        sa.Column("bp_code", sa.String(length=25), nullable=True),
        sa.Column("driver_name", sa.String(length=255), nullable=True),
        sa.Column("vehicle_plate", sa.String(length=50), nullable=True),
        sa.Column("schedule_id", sa.String(length=36), sa.ForeignKey("arrival_schedule.id", ondelete="SET NULL"), nullable=True),
        sa.Column("related_arrival_id", sa.String(length=36), sa.ForeignKey("arrival_transaction.id", ondelete="SET NULL"), nullable=True),
        sa.Column("security_checkin_time", sa.DateTime(), nullable=True),
        sa.Column("security_checkout_time", sa.DateTime(), nullable=True),
        sa.Column("security_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("warehouse_checkin_time", sa.DateTime(), nullable=True),
        sa.Column("warehouse_checkout_time", sa.DateTime(), nullable=True),
        sa.Column("warehouse_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("delivery_compliance", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("pic_receiving", sa.String(length=64), nullable=True),
        sa.Column("visitor_id", sa.String(length=64), nullable=True),
    )
    for col in ("dn_number", "po_number", "kind", "plan_delivery_date", "bp_code", "schedule_id",
                "related_arrival_id", "security_checkin_time", "status", "delivery_compliance",
                "pic_receiving", "visitor_id"):
        op.create_index(f"ix_arrival_transaction_{col}", "arrival_transaction", [col])
    op.create_index("ix_arrival_supplier_delivery", "arrival_transaction", ["bp_code", "plan_delivery_date"])
    op.create_index(
        "uq_arrival_regular_dn_po", "arrival_transaction", ["dn_number", "po_number"], unique=True,
        sqlite_where=sa.text("kind = 'regular'"), postgresql_where=sa.text("kind = 'regular'"),
    )
    op.create_index(
        "uq_arrival_additional_dn_po_schedule", "arrival_transaction", ["dn_number", "po_number", "schedule_id"], unique=True,
        sqlite_where=sa.text("kind = 'additional'"), postgresql_where=sa.text("kind = 'additional'"),
    )

    op.create_table(
        "dn_scan_session",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("arrival_id", sa.String(length=36), sa.ForeignKey("arrival_transaction.id", ondelete="CASCADE"), nullable=False),
        sa.Column("dn_number", sa.String(length=25), nullable=False),
        sa.Column("operator_id", sa.String(length=64), nullable=True),
        sa.Column("session_start", sa.DateTime(), nullable=True),
        sa.Column("session_end", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="in_progress"),
    )
    op.create_index("ix_dn_scan_session_arrival_id", "dn_scan_session", ["arrival_id"])
    op.create_index("ix_dn_scan_session_dn_number", "dn_scan_session", ["dn_number"])
    op.create_index("ix_dn_scan_session_status", "dn_scan_session", ["status"])

    op.create_table(
        "scanned_item",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("session_id", sa.String(length=36), sa.ForeignKey("dn_scan_session.id", ondelete="CASCADE"), nullable=True),
        sa.Column("arrival_id", sa.String(length=36), sa.ForeignKey("arrival_transaction.id", ondelete="CASCADE"), nullable=False),
        sa.Column("dn_number", sa.String(length=25), nullable=False),
        sa.Column("part_no", sa.String(length=50), nullable=False),
        sa.Column("scanned_quantity", sa.Integer(), nullable=False),
        sa.Column("total_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lot_number", sa.String(length=255), nullable=True),
        sa.Column("qr_raw_data", sa.Text(), nullable=True),
        sa.Column("scanned_by", sa.String(length=64), nullable=True),
        sa.Column("scanned_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    for col in ("session_id", "arrival_id", "dn_number", "part_no"):
        op.create_index(f"ix_scanned_item_{col}", "scanned_item", [col])
    op.create_index("ix_scanned_item_session_part", "scanned_item", ["session_id", "part_no"])

    op.create_table(
        "delivery_performance",
        sa.Column("id", sa.String(length=36), primary_key=True),
        *_timestamps(),
        sa.Column("bp_code", sa.String(length=25), nullable=False),
        sa.Column("period_month", sa.Integer(), nullable=False),
        sa.Column("period_year", sa.Integer(), nullable=False),
        sa.Column("total_deliveries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("on_time_deliveries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_delay_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_dn_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_receipt_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("fulfillment_percentage", sa.Numeric(7, 2), nullable=False, server_default="100.00"),
        sa.Column("fulfillment_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivery_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("final_score", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("performance_grade", sa.String(length=1), nullable=False, server_default="A"),
        sa.Column("ranking", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category", sa.String(length=8), nullable=False, server_default="medium"),
        sa.Column("calculated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("bp_code", "period_month", "period_year", name="uq_delivery_performance_supplier_period"),
    )
    for col in ("bp_code", "period_month", "period_year", "performance_grade", "ranking", "category"):
        op.create_index(f"ix_delivery_performance_{col}", "delivery_performance", [col])
    op.create_index("ix_delivery_performance_period_ranking", "delivery_performance", ["period_year", "period_month", "ranking"])
    op.create_index("ix_delivery_performance_final_score", "delivery_performance", ["final_score"])

    op.create_table(
        "job_run",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("job_name", sa.String(length=64), nullable=False),
        sa.Column("params", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="running"),
        sa.Column("counters", sa.JSON(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_job_run_job_name", "job_run", ["job_name"])
    op.create_index("ix_job_run_status", "job_run", ["status"])
    op.create_index("ix_job_run_name_status", "job_run", ["job_name", "status"])
    op.create_index(
        "uq_job_run_running", "job_run", ["job_name"], unique=True,
        sqlite_where=sa.text("status = 'running'"), postgresql_where=sa.text("status = 'running'"),
    )


def downgrade():
    op.drop_table("job_run")
    op.drop_table("delivery_performance")
    op.drop_table("scanned_item")
    op.drop_table("dn_scan_session")
    op.drop_table("arrival_transaction")
    op.drop_table("arrival_schedule")
