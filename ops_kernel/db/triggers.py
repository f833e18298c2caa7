"""
Module: ops_kernel.db.triggers
Responsibility: Installing, removing and listing SQLite immutability
    triggers (Layer 2 of 2).  This is the database-level complement to the
    ORM-level listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only (plus the
    model mixins, imported inline, to discover which tables to protect).

Invariants enforced (per protected table):
    - History tables: no UPDATE, no DELETE.
    - Entity tables: ``consecutive`` and ``requested_by`` never change,
      ``approved_by`` is never overwritten once set, rows are never deleted.

Failure modes:
    - SQLite ``RAISE(ABORT, ...)`` on any trigger violation, surfaced by
      SQLAlchemy as IntegrityError.

Audit relevance:
    These triggers still hold when the ORM layer is bypassed (raw SQL, bulk
    statements, direct sqlite3 access).
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ops_kernel.db.base import Base
from ops_kernel.logging_config import get_logger

logger = get_logger("db.triggers")


def _history_trigger_sql(table: str) -> dict[str, str]:
    return {
        f"trg_{table}_immutability_update": f"""
            CREATE TRIGGER IF NOT EXISTS trg_{table}_immutability_update
            BEFORE UPDATE ON {table}
            BEGIN
                SELECT RAISE(ABORT, 'History entries are append-only');
            END
        """,
        f"trg_{table}_immutability_delete": f"""
            CREATE TRIGGER IF NOT EXISTS trg_{table}_immutability_delete
            BEFORE DELETE ON {table}
            BEGIN
                SELECT RAISE(ABORT, 'History entries cannot be deleted');
            END
        """,
    }


def _entity_trigger_sql(table: str) -> dict[str, str]:
    return {
        f"trg_{table}_identity_update": f"""
            CREATE TRIGGER IF NOT EXISTS trg_{table}_identity_update
            BEFORE UPDATE OF consecutive, requested_by ON {table}
            WHEN NEW.consecutive IS NOT OLD.consecutive
              OR NEW.requested_by IS NOT OLD.requested_by
            BEGIN
                SELECT RAISE(ABORT, 'consecutive and requested_by are immutable');
            END
        """,
        f"trg_{table}_approver_update": f"""
            CREATE TRIGGER IF NOT EXISTS trg_{table}_approver_update
            BEFORE UPDATE OF approved_by ON {table}
            WHEN OLD.approved_by IS NOT NULL
              AND NEW.approved_by IS NOT OLD.approved_by
            BEGIN
                SELECT RAISE(ABORT, 'approved_by is write-once');
            END
        """,
        f"trg_{table}_delete": f"""
            CREATE TRIGGER IF NOT EXISTS trg_{table}_delete
            BEFORE DELETE ON {table}
            BEGIN
                SELECT RAISE(ABORT, 'Workflow entities are never deleted');
            END
        """,
    }


def _protected_tables() -> tuple[list[str], list[str]]:
    """(entity tables, history tables) among the mapped classes."""
    from ops_kernel.models.workflow import HistoryEntryMixin, WorkflowEntityMixin

    entity_tables: list[str] = []
    history_tables: list[str] = []
    for mapper in Base.registry.mappers:
        cls = mapper.class_
        if issubclass(cls, WorkflowEntityMixin):
            entity_tables.append(mapper.local_table.name)
        elif issubclass(cls, HistoryEntryMixin):
            history_tables.append(mapper.local_table.name)
    return sorted(entity_tables), sorted(history_tables)


def _all_trigger_sql() -> dict[str, str]:
    entity_tables, history_tables = _protected_tables()
    statements: dict[str, str] = {}
    for table in entity_tables:
        statements.update(_entity_trigger_sql(table))
    for table in history_tables:
        statements.update(_history_trigger_sql(table))
    return statements


def expected_trigger_names() -> list[str]:
    return sorted(_all_trigger_sql())


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers.

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: Every trigger in expected_trigger_names() exists.
        Uses CREATE TRIGGER IF NOT EXISTS, so repeated calls are harmless.
    """
    statements = _all_trigger_sql()
    with engine.begin() as conn:
        for sql in statements.values():
            conn.execute(text(sql))
    logger.info("immutability_triggers_installed", extra={"count": len(statements)})


def get_installed_triggers(engine: Engine) -> list[str]:
    """Names of immutability triggers currently present in the database."""
    with engine.connect() as conn:
        result = conn.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'trigger' ORDER BY name")
        )
        installed = {row[0] for row in result}
    return sorted(installed & set(expected_trigger_names()))


def triggers_installed(engine: Engine) -> bool:
    return get_installed_triggers(engine) == expected_trigger_names()
