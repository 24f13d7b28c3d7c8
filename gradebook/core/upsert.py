"""Dialect-aware INSERT ... ON CONFLICT DO UPDATE.

Uniqueness is enforced by the table constraints; callers rely on the
database to resolve the conflict instead of reading before writing.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import ColumnElement
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from gradebook.core.exceptions import InternalError

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def build_upsert(
    db: Session,
    model: type,
    values: dict[str, Any],
    conflict_columns: list[str],
    update_columns: list[str],
    where: ColumnElement[bool] | None = None,
):
    """Build an upsert for model keyed on conflict_columns.

    Only update_columns are overwritten on conflict; updated_at is always
    refreshed because ON CONFLICT skips Python-side onupdate defaults.
    When where is given, a conflicting row that fails it is left untouched
    and the statement reports zero affected rows.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise InternalError(
            "Upsert is not supported on this database backend",
            details={"dialect": dialect},
        )

    stmt = insert(model).values(**values)
    set_ = {column: stmt.excluded[column] for column in update_columns}
    set_["updated_at"] = datetime.now(timezone.utc)
    return stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_=set_,
        where=where,
    )
