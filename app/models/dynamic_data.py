from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base


class DynamicData(Base):
    """
    Free-form JSON documents stored per (user_id, key).
    `data` holds the raw JSON text exactly as the client sent it.
    """
    __tablename__ = "user_dynamic_data"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_user_dynamic_data_user_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    data = Column(Text, nullable=True)
    updated_time = Column(TIMESTAMP(timezone=True), nullable=True, server_default=func.now())
    updated_by = Column(String(255), nullable=True)
