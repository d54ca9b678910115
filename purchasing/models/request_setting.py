from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from purchasing.database import Base


class RequestSetting(Base):
    """Flat key/value store behind RequestSettings. Values are JSON or plain text."""

    __tablename__ = "request_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
