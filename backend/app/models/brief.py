from sqlalchemy import Column, String, Text, JSON, Boolean, DateTime, ForeignKey, Index, Uuid
import uuid
from ..core.db import Base, utcnow


class Brief(Base):
    __tablename__ = "briefs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    linkedin_url = Column(String, nullable=False)
    meeting_goal = Column(String(500), nullable=False)

    # Denormalised from profile_data for fast listing
    profile_name = Column(String, nullable=True)
    profile_headline = Column(String, nullable=True)
    profile_photo_url = Column(String, nullable=True)
    profile_location = Column(String, nullable=True)
    profile_company = Column(String, nullable=True)

    profile_data = Column(JSON, nullable=False)  # Profile snapshot + enhanced_insights

    summary = Column(Text, nullable=False)
    talking_points = Column(JSON, nullable=False, default=list)
    common_ground = Column(JSON, nullable=False, default=list)
    icebreaker = Column(Text, nullable=False)
    questions = Column(JSON, nullable=False, default=list)

    is_saved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_briefs_user_created", "user_id", "created_at"),
    )
