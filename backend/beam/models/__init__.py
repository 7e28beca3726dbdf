"""Import all models so SQLAlchemy metadata knows about them."""
from beam.models.base import Base
from beam.models.file_record import FileRecord

__all__ = ["Base", "FileRecord"]
