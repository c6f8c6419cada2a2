from .migrations import apply_migrations, connect_db
from .store import DocumentStore, DocumentTransaction

__all__ = ["connect_db", "apply_migrations", "DocumentStore", "DocumentTransaction"]
