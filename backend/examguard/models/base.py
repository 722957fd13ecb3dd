from sqlalchemy import Column, Integer, DateTime

from ..core.database import Base
from ..utils.timezone import get_utc_now


class BaseModel(Base):
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=get_utc_now)
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now)
