"""
TableProbe - checks whether the remote invoice_drafts table is provisioned.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.db.engine import run_db
from app.core.exceptions import RemoteFailureError
from .models import InvoiceDraft

logger = logging.getLogger(__name__)


class TableProbe:
    """
    exists() never raises: any error while probing means "not available".
    Results are not cached here; callers decide how often to re-probe.
    """

    table = InvoiceDraft.__table__

    async def exists(self) -> bool:
        def _probe(db: Session) -> bool:
            db.execute(select(InvoiceDraft.id).limit(0)).all()
            return True

        try:
            return await run_db(_probe)
        except Exception as e:
            logger.warning(f"Table '{self.table.name}' is not available: {e}")
            return False

    async def create_table(self) -> bool:
        """
        Provision the drafts table (no-op if it already exists).

        Raises:
            RemoteFailureError: If the backend refuses the DDL
        """
        def _create(db: Session) -> bool:
            self.table.create(bind=db.connection(), checkfirst=True)
            return True

        try:
            created = await run_db(_create)
        except SQLAlchemyError as e:
            logger.error(f"Creating table '{self.table.name}' failed: {e}")
            raise RemoteFailureError(f"Could not create table '{self.table.name}'")
        logger.info(f"Table '{self.table.name}' is provisioned")
        return created
