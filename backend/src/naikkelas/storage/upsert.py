"""Insert-if-absent at the storage boundary.

Row creation on first use (reward balance, credit balance, referral code,
referral attribution) races between concurrent requests. Every such insert
goes through `insert_ignore`, which lets the unique constraint decide the
winner: the losing writer gets ``False`` back and re-reads the winner's row
instead of raising.
"""

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def insert_ignore(session: Session, model: Any, values: dict[str, Any]) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING.

    Args:
        session: Session whose transaction the insert joins
        model: Mapped class to insert into
        values: Column values

    Returns:
        True if the row was written, False if a unique constraint already held it
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"insert_ignore is not supported on {dialect}")

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing()
    result = session.execute(stmt)
    return result.rowcount == 1
