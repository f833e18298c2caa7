"""
Module ORM Registry (``ops_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created and before the immutability triggers look for protected tables.

Architecture position
---------------------
**Modules layer** -- utility.  Called lazily by
``ops_kernel.db.engine.create_tables``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ops_modules.*.orm`` module.

    This function is idempotent -- repeated calls are harmless.
    """
    import ops_kernel.models  # noqa: F401
    import ops_modules.planner.orm  # noqa: F401
    import ops_modules.requests.orm  # noqa: F401
    import ops_modules.warehouse.orm  # noqa: F401
