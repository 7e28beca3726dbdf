"""FileRecord model - metadata of one uploaded file (bytes live in blob storage)."""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from beam.models.base import Base, as_utc, utcnow

EXPIRY_CHECK_NAME = "ck_file_records_expiry_after_creation"


class FileRecord(Base):
    __tablename__ = "file_records"
    __table_args__ = (
        CheckConstraint("expires_at > created_at", name=EXPIRY_CHECK_NAME),
    )

    # Primary key doubles as the uniqueness guard for code allocation
    code: Mapped[str] = mapped_column(String(16), primary_key=True)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    burn_after: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def is_expired(self, now: datetime | None = None) -> bool:
        return as_utc(self.expires_at) < (now or utcnow())

    def __repr__(self) -> str:
        return f"<FileRecord(code={self.code}, name={self.original_name}, burn_after={self.burn_after})>"
