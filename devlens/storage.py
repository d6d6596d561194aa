import logging
import os
import threading
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .models.records import Base, SavedAnalysisRecord
from .models.schemas import SavedAnalysis, SavedAnalysisIn

logger = logging.getLogger(__name__)


def _to_model(record: SavedAnalysisRecord) -> SavedAnalysis:
    return SavedAnalysis(
        id=record.id,
        identifier=record.identifier,
        profile_snapshot=record.profile_snapshot,
        match_snapshot=record.match_snapshot,
        job_description=record.job_description,
        created_at=record.created_at.replace(tzinfo=timezone.utc),
    )


class AnalysisStore:
    """Saved analyses in a SQL database (SQLite file in the data directory by default)."""

    DB_NAME = "devlens.db"

    def __init__(self, data_dir: str, database_url: str = ""):
        self.data_dir = data_dir
        if not database_url:
            database_url = f"sqlite:///{os.path.join(data_dir, self.DB_NAME)}"
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args)
        self._session_factory = sessionmaker(bind=self.engine, autoflush=False)
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def session(self) -> Session:
        """A new session; the data directory and tables are created on first use."""
        if not self._schema_ready:
            with self._schema_lock:
                if not self._schema_ready:
                    if self.engine.url.get_backend_name() == "sqlite":
                        os.makedirs(self.data_dir, exist_ok=True)
                    Base.metadata.create_all(self.engine)
                    self._schema_ready = True
                    logger.info("Saved analyses stored at %s", self.engine.url)
        return self._session_factory()

    def save(self, analysis: SavedAnalysisIn) -> SavedAnalysis:
        data = analysis.to_json()
        with self.session() as s:
            record = SavedAnalysisRecord(
                identifier=analysis.identifier,
                profile_snapshot=data["profileSnapshot"],
                match_snapshot=data.get("matchSnapshot"),
                job_description=analysis.job_description,
                created_at=datetime.now(timezone.utc).replace(tzinfo=None),
            )
            s.add(record)
            s.commit()
            s.refresh(record)
            logger.info("Saved analysis %d for %s", record.id, record.identifier)
            return _to_model(record)

    def list(self) -> List[SavedAnalysis]:
        with self.session() as s:
            records = (
                s.query(SavedAnalysisRecord)
                .order_by(SavedAnalysisRecord.created_at.desc(), SavedAnalysisRecord.id.desc())
                .all()
            )
            return [_to_model(r) for r in records]

    def get(self, analysis_id: int) -> Optional[SavedAnalysis]:
        with self.session() as s:
            record = s.get(SavedAnalysisRecord, analysis_id)
            return _to_model(record) if record is not None else None

    def delete(self, analysis_id: int) -> bool:
        with self.session() as s:
            record = s.get(SavedAnalysisRecord, analysis_id)
            if record is None:
                return False
            s.delete(record)
            s.commit()
            return True
