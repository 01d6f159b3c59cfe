# storefront/services/counter_service.py
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.order_models import Counter

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def next_sequence(db: AsyncSession, name: str) -> int:
    """
    Atomically increment the named counter and return the new value.

    A single upsert-and-increment statement (created at 1 on first use), so
    concurrent callers can never read the same value. Runs inside the caller's
    transaction; the caller commits.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Counters are not supported on '{dialect}'")

    stmt = (
        insert(Counter)
        .values(name=name, seq=1)
        .on_conflict_do_update(
            index_elements=[Counter.name],
            set_={"seq": Counter.seq + 1},
        )
        .returning(Counter.seq)
    )
    result = await db.execute(stmt)
    return result.scalar_one()
