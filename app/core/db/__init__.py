# Models register themselves on Base.metadata when their module is imported;
# import app.modules.drafts.models before calling create_all or autogenerate.

from app.core.db.base import Base

__all__ = ["Base"]
