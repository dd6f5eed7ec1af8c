from sqlalchemy import Column, String, Boolean, DateTime, Date, Text, Index
from sqlalchemy.sql import func
from app.database import Base


class AvailabilityBlock(Base):
    """
    Interval during which a technician is unavailable, on top of their
    standing weekly working hours.

    Blocks with no start/end time cover the whole day. Cancelling a block
    flips status to "cancelled"; rows are never deleted.
    """

    __tablename__ = "availability_blocks"

    id = Column(String(36), primary_key=True, index=True)
    contractor_id = Column(String(36), nullable=False)
    tech_id = Column(String(36), nullable=False)

    type = Column(String(30), nullable=False, default="personal")
    title = Column(String(200))
    notes = Column(Text)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(String(5))  # HH:MM, null = all day
    end_time = Column(String(5))
    is_all_day = Column(Boolean, default=True)

    is_recurring = Column(Boolean, default=False)
    recurrence_rule = Column(String(200))  # only FREQ=WEEKLY is interpreted

    google_event_id = Column(String(255))
    source = Column(String(20), default="manual")  # manual | google_sync | system
    status = Column(String(20), default="active", nullable=False)  # active | cancelled
    created_by = Column(String(36))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("idx_availability_contractor_status", "contractor_id", "status"),
        Index("idx_availability_tech", "tech_id"),
    )

    def __repr__(self):
        return f"<AvailabilityBlock {self.tech_id} {self.start_date} {self.type}>"
