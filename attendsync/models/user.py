# attendsync/models/user.py
import uuid

from sqlalchemy import Boolean, Column, String

from attendsync.db.base import Base


class User(Base):
    """
    An employee known to the attendance tracker, linked to a Discord account.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    discord_id = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} discord_id={self.discord_id} name={self.name!r}>"
