# models/base.py
from datetime import datetime
import uuid

from efest.extensions import db
from efest.utils.data_processing import to_camel_case


class BaseModel(db.Model):
    """Base model class with common functionality."""

    __abstract__ = True

    # Columns never exposed through to_dict
    __hidden_fields__ = ()

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    def to_dict(self):
        """Convert model instance to a dictionary with camelCase keys."""
        result = {}

        for column in self.__table__.columns:
            if column.name in self.__hidden_fields__:
                continue

            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[to_camel_case(column.name)] = value

        return result
