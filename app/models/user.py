from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from app.db.database import Base


class User(Base):
    """Local mirror of an identity-provider account."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    auth_id = Column(String(255), unique=True, index=True, nullable=False)  # Supabase auth user id (JWT "sub")
    email = Column(String(255), unique=True, index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
