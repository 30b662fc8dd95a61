import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Uuid

from docspace.core.db import Base


class BaseModel(Base):
    """Общие колонки моделей: UUID ключ и отметки времени"""
    __abstract__ = True

    uuid = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # updated_at пишут репозитории явно: отметка просмотра его не меняет
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
