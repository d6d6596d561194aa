import json

from sqlalchemy import Column, DateTime, Integer, String, Text, TypeDecorator
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class JSONType(TypeDecorator):
    """JSON document stored as text, so SQLite needs no JSON1 support."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return json.loads(value)


class SavedAnalysisRecord(Base):
    __tablename__ = "saved_analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String, nullable=False, index=True)
    profile_snapshot = Column(JSONType, nullable=False)
    match_snapshot = Column(JSONType, nullable=True)
    job_description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)  # naive UTC
