"""Persistence of the progress store."""
import json
import logging
from typing import Callable, Optional

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from conjbot import monitoring
from conjbot.config import settings
from conjbot.models.base import SessionLocal
from conjbot.models.models import StoredProgress
from conjbot.models.training_models import ProgressStore

logger = logging.getLogger(__name__)


class ProgressService:
    """Load and save one learner's progress store.

    Every call opens its own database session, so the service can be held by
    a long-lived trainer without keeping a connection checked out.
    """

    def __init__(
        self,
        owner_id: int,
        session_factory: Callable[[], Session] = SessionLocal,
        namespace: Optional[str] = None,
    ):
        self.owner_id = owner_id
        self.session_factory = session_factory
        self.namespace = namespace or settings.trainer.storage_namespace

    def _query(self, db: Session):
        return db.query(StoredProgress).filter(
            and_(
                StoredProgress.owner_id == self.owner_id,
                StoredProgress.namespace == self.namespace,
            )
        )

    def load(self) -> Optional[ProgressStore]:
        """Stored progress, or None when nothing usable is stored."""
        db = self.session_factory()
        try:
            row = self._query(db).first()
            if row is None:
                return None
            payload = row.payload
        except SQLAlchemyError as e:
            logger.error(f"Could not load progress of user {self.owner_id}: {e}")
            monitoring.progress_errors.labels(operation="load").inc()
            return None
        finally:
            db.close()

        try:
            return ProgressStore.from_dict(json.loads(payload))
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed progress of user {self.owner_id}: {e}")
            monitoring.progress_errors.labels(operation="parse").inc()
            return None

    def save(self, store: ProgressStore) -> None:
        """Write the store; failures are logged and otherwise ignored."""
        payload = json.dumps(store.to_dict(), ensure_ascii=False)
        db = self.session_factory()
        try:
            row = self._query(db).first()
            if row is None:
                db.add(StoredProgress(owner_id=self.owner_id, namespace=self.namespace, payload=payload))
            else:
                row.payload = payload
            db.commit()
            monitoring.progress_saves.inc()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not save progress of user {self.owner_id}: {e}")
            monitoring.progress_errors.labels(operation="save").inc()
        finally:
            db.close()

