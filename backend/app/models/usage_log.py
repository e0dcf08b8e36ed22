from sqlalchemy import Column, String, JSON, DateTime, ForeignKey, Index, Integer, Uuid
import enum
from ..core.db import Base, utcnow


class UsageAction(str, enum.Enum):
    BRIEF_GENERATED = "brief_generated"
    BRIEF_REFRESHED = "brief_refreshed"
    PROFILE_SYNCED = "profile_synced"


class UsageLog(Base):
    """
    Append-only ledger of billable actions.

    Rows are never updated; quota decisions are computed from them.
    """
    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(32), nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_usage_logs_user_action_created", "user_id", "action", "created_at"),
    )
