from sqlalchemy import Column, String, JSON, DateTime, Uuid
import uuid
from ..core.db import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id = Column(String, unique=True, index=True, nullable=False)  # identity-provider subject
    email = Column(String, nullable=True)
    name = Column(String, nullable=True)
    company = Column(String, nullable=True)
    role = Column(String, nullable=True)
    plan = Column(String(32), nullable=False, default="free")
    linkedin_url = Column(String, nullable=True)
    linkedin_data = Column(JSON, nullable=True)  # canonical Profile of the user themself
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
