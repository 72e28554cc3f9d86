"""Database models for the bot."""
from sqlalchemy import Column, Integer, String, Text, UniqueConstraint

from conjbot.models.base import Base, TimestampMixin


class StoredProgress(Base, TimestampMixin):
    """Serialized progress store of one learner under one storage namespace."""

    __tablename__ = "stored_progress"
    __table_args__ = (UniqueConstraint("owner_id", "namespace", name="uq_progress_owner_namespace"),)

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)  # Telegram user id
    namespace = Column(String, nullable=False)  # e.g., "fr_conj_er_app_v1"
    payload = Column(Text, nullable=False)  # JSON document

    def __repr__(self) -> str:
        return f"<StoredProgress owner={self.owner_id} namespace={self.namespace}>"
