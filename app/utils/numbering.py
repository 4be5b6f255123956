"""Human-readable sequential document numbers"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

SEQUENCE_WIDTH = 4


async def next_sequence_number(db: AsyncSession, column, prefix: str) -> str:
    """
    Next number for ``prefix``: the highest existing ``{prefix}NNNN`` plus one, or 0001.

    The sequence widens past 9999, so longer numbers rank above shorter ones.
    ``column`` must carry a unique constraint; two concurrent writers that pick the
    same number fail on insert rather than sharing it.
    """
    result = await db.execute(
        select(column)
        .where(column.like(f"{prefix}%"))
        .order_by(func.length(column).desc(), column.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()
    sequence = 1
    if last:
        suffix = last[len(prefix):]
        if suffix.isdigit():
            sequence = int(suffix) + 1
    return f"{prefix}{sequence:0{SEQUENCE_WIDTH}d}"
