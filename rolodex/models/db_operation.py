from enum import Enum

from sqlalchemy import and_, delete, func, select, update

from rolodex.database import session_scope
from rolodex.models.schema.db_config import Databases

_OPERATORS = {
    "=": lambda column, value: column == value,
    "!=": lambda column, value: column != value,
    "<": lambda column, value: column < value,
    "<=": lambda column, value: column <= value,
    ">": lambda column, value: column > value,
    ">=": lambda column, value: column >= value,
}


def _model(db: str):
    model = getattr(Databases, db, None)
    if model is None:
        raise ValueError(f"Unknown database '{db}'")
    return model


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    return value


def _build_conditions(model, filters: dict) -> list:
    conditions = []
    for field, value in filters.items():
        if not hasattr(model, field):
            raise ValueError(f"{model.__name__} has no column '{field}'")
        column = getattr(model, field)
        # A tuple is a comparison, e.g. expires_at=("<=", now)
        if isinstance(value, tuple):
            operator, condition_value = value
            if operator not in _OPERATORS:
                raise ValueError(f"Unsupported operator '{operator}'")
            conditions.append(_OPERATORS[operator](column, _plain(condition_value)))
        elif value is None:
            conditions.append(column.is_(None))
        else:
            conditions.append(column == _plain(value))
    return conditions


def _delete_expired_records(db: str, now) -> int:
    model = _model(db)
    with session_scope() as session:
        result = session.execute(delete(model).where(model.expires_at <= now))
        return result.rowcount


def _delete_records(db: str, **kwargs) -> int:
    model = _model(db)
    conditions = _build_conditions(model, kwargs)

    with session_scope() as session:
        result = session.execute(delete(model).where(*conditions))
        return result.rowcount


def _add_record(db: str, **kwargs):
    model = _model(db)

    instance = model(**{field: _plain(value) for field, value in kwargs.items()})

    with session_scope() as session:
        session.add(instance)
        session.flush()
    return instance


def _select_records(
    db: str,
    *,
    order_by=None,
    descending: bool = False,
    limit: int | None = None,
    offset: int | None = None,
    **kwargs,
):
    model = _model(db)

    stmt = select(model).where(*_build_conditions(model, kwargs))

    if order_by is not None:
        column = getattr(model, order_by)
        stmt = stmt.order_by(
            column.desc() if descending else column.asc(),
            model.id.desc() if descending else model.id.asc(),
        )
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)

    with session_scope() as session:
        return session.execute(stmt).scalars().all()


def _select_latest(db: str, *, order_by: str = "created_at", **kwargs):
    """Newest row matching the filters, ties broken by id."""
    model = _model(db)

    stmt = (
        select(model)
        .where(and_(*_build_conditions(model, kwargs)))
        .order_by(getattr(model, order_by).desc(), model.id.desc())
        .limit(1)
    )

    with session_scope() as session:
        return session.execute(stmt).scalars().first()


def _count_records(db: str, **kwargs) -> int:
    model = _model(db)

    stmt = select(func.count()).select_from(model)
    conditions = _build_conditions(model, kwargs)
    if conditions:
        stmt = stmt.where(*conditions)

    with session_scope() as session:
        return int(session.execute(stmt).scalar_one())


def _update_records(
    db: str,
    *,
    values: dict,
    **filters
) -> int:
    """Conditional update; the returned rowcount tells whether the guard held."""
    model = _model(db)

    conditions = _build_conditions(model, filters)

    with session_scope() as session:
        result = session.execute(
            update(model)
            .where(*conditions)
            .values(**{field: _plain(value) for field, value in values.items()})
        )

        return result.rowcount
