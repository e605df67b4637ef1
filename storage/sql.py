import logging
from contextlib import contextmanager

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import models as orm
from models.models import db
from models.schemas import (
    CaseStatus,
    CaseStatusCount,
    CrimeTypeCount,
    CriminalRecord,
    FirRecord,
    Statistics,
    User,
    utcnow,
)
from storage.base import (
    CRIMINAL_FIELDS,
    FIR_FIELDS,
    USER_FIELDS,
    Storage,
    as_changes,
    check_fields,
    hash_password,
)
from storage.errors import ConflictError, StorageError
from storage.ids import new_id, new_report_number, unique_report_number
from storage.search import (
    CRIMINAL_FILTERS,
    CRIMINAL_TEXT_FIELDS,
    FIR_FILTERS,
    FIR_TEXT_FIELDS,
    active_filters,
    matches_text,
)

logger = logging.getLogger("records.storage")


def _like(query):
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlStorage(Storage):
    """Relational store on Flask-SQLAlchemy. Must be used inside an app context.

    Every public call commits (or rolls back) before returning, so no
    transaction outlives a request.
    """

    def __init__(self, database=db):
        self.db = database

    @property
    def session(self):
        return self.db.session

    @contextmanager
    def _guard(self, action):
        # The body records the unique value it is writing in ``claimed``.
        claimed = {}
        try:
            yield claimed
        except IntegrityError as exc:
            self.session.rollback()
            if not claimed:
                logger.error("Storage failure during %s: %s", action, exc)
                raise StorageError(f"{action} failed") from exc
            field, value = next(iter(claimed.items()))
            raise ConflictError(field, value) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Storage failure during %s: %s", action, exc)
            raise StorageError(f"{action} failed") from exc

    def _commit(self):
        self.session.commit()

    def _rows(self, model, *criteria):
        stmt = select(model).order_by(model.created_at.desc())
        if criteria:
            stmt = stmt.where(*criteria)
        return self.session.execute(stmt).scalars().all()

    def _exists(self, column, value, exclude_id=None):
        stmt = select(column.class_.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(column.class_.id != exclude_id)
        return self.session.execute(stmt.limit(1)).first() is not None

    def _delete(self, model, record_id):
        result = self.session.execute(delete(model).where(model.id == record_id))
        return result.rowcount > 0

    def _search(self, model, query, wanted, text_fields):
        criteria = [getattr(model, attr) == value for attr, value in wanted.items()]
        if not query:
            return self._rows(model, *criteria)

        # SQLite lower() only folds ASCII, so match text in Python there.
        if self.db.engine.dialect.name == "sqlite":
            rows = self._rows(model, *criteria)
            return [r for r in rows if matches_text(r, query, text_fields)]

        pattern = _like(query)
        criteria.append(or_(*(
            getattr(model, field).ilike(pattern, escape="\\") for field in text_fields
        )))
        return self._rows(model, *criteria)

    @staticmethod
    def _apply(row, changes):
        for field, value in changes.items():
            setattr(row, field, value)

    # ------------------- USERS -------------------
    def get_user(self, user_id):
        with self._guard("get user"):
            row = self.session.get(orm.User, user_id)
            return User.model_validate(row) if row else None

    def get_user_by_username(self, username):
        with self._guard("get user by username"):
            row = self.session.execute(
                select(orm.User).filter_by(username=username)
            ).scalar_one_or_none()
            return User.model_validate(row) if row else None

    def list_users(self):
        with self._guard("list users"):
            return [User.model_validate(r) for r in self._rows(orm.User)]

    def insert_user(self, draft):
        with self._guard("insert user") as claimed:
            if self._exists(orm.User.username, draft.username):
                raise ConflictError("username", draft.username)
            claimed["username"] = draft.username

            row = orm.User(
                **draft.model_dump(exclude={"password"}),
                id=new_id(),
                password=hash_password(draft.password),
                is_active=True,
                created_at=utcnow(),
            )
            self.session.add(row)
            self._commit()
            logger.info("User created | %s | %s", row.username, row.role)
            return User.model_validate(row)

    def update_user(self, user_id, patch):
        changes = as_changes(patch)
        check_fields(changes, USER_FIELDS, "user")

        with self._guard("update user") as claimed:
            row = self.session.get(orm.User, user_id)
            if row is None:
                return None

            username = changes.get("username")
            if username:
                if self._exists(orm.User.username, username, exclude_id=user_id):
                    raise ConflictError("username", username)
                claimed["username"] = username
            if changes.get("password"):
                changes["password"] = hash_password(changes["password"])

            self._apply(row, changes)
            self._commit()
            return User.model_validate(row)

    def delete_user(self, user_id):
        with self._guard("delete user"):
            removed = self._delete(orm.User, user_id)
            self._commit()
        if removed:
            logger.info("User deleted | %s", user_id)
        return removed

    # ------------------- CRIMINAL RECORDS -------------------
    def get_criminal(self, record_id):
        with self._guard("get criminal record"):
            row = self.session.get(orm.CriminalRecord, record_id)
            return CriminalRecord.model_validate(row) if row else None

    def list_criminals(self):
        with self._guard("list criminal records"):
            return [CriminalRecord.model_validate(r) for r in self._rows(orm.CriminalRecord)]

    def insert_criminal(self, draft):
        now = utcnow()
        fields = draft.model_dump()
        fields["fir_number"] = fields.get("fir_number") or new_report_number(now)

        with self._guard("insert criminal record"):
            row = orm.CriminalRecord(**fields, id=new_id(), created_at=now, updated_at=now)
            self.session.add(row)
            self._commit()
            logger.info("Criminal record created | %s | %s", row.id, row.fir_number)
            return CriminalRecord.model_validate(row)

    def update_criminal(self, record_id, patch):
        changes = as_changes(patch)
        check_fields(changes, CRIMINAL_FIELDS, "criminal record")

        with self._guard("update criminal record"):
            row = self.session.get(orm.CriminalRecord, record_id)
            if row is None:
                return None
            self._apply(row, changes)
            row.updated_at = utcnow()
            self._commit()
            return CriminalRecord.model_validate(row)

    def delete_criminal(self, record_id):
        with self._guard("delete criminal record"):
            self.session.execute(
                update(orm.FirRecord)
                .where(orm.FirRecord.criminal_id == record_id)
                .values(criminal_id=None)
            )
            removed = self._delete(orm.CriminalRecord, record_id)
            if removed:
                self._commit()
            else:
                self.session.rollback()
        if removed:
            logger.info("Criminal record deleted | %s", record_id)
        return removed

    def search_criminals(self, query="", filters=None):
        wanted = active_filters(filters, CRIMINAL_FILTERS)
        with self._guard("search criminal records"):
            rows = self._search(orm.CriminalRecord, query, wanted, CRIMINAL_TEXT_FIELDS)
            return [CriminalRecord.model_validate(r) for r in rows]

    # ------------------- FIR RECORDS -------------------
    def get_fir(self, record_id):
        with self._guard("get FIR"):
            row = self.session.get(orm.FirRecord, record_id)
            return FirRecord.model_validate(row) if row else None

    def list_firs(self):
        with self._guard("list FIRs"):
            return [FirRecord.model_validate(r) for r in self._rows(orm.FirRecord)]

    def insert_fir(self, draft):
        now = utcnow()
        fields = draft.model_dump()

        with self._guard("insert FIR") as claimed:
            if fields.get("fir_number"):
                if self._exists(orm.FirRecord.fir_number, fields["fir_number"]):
                    raise ConflictError("firNumber", fields["fir_number"])
            else:
                fields["fir_number"] = unique_report_number(
                    lambda number: self._exists(orm.FirRecord.fir_number, number)
                )
            claimed["firNumber"] = fields["fir_number"]
            fields["fir_date"] = fields.get("fir_date") or now

            row = orm.FirRecord(**fields, id=new_id(), created_at=now, updated_at=now)
            self.session.add(row)
            self._commit()
            logger.info("FIR registered | %s | %s", row.id, row.fir_number)
            return FirRecord.model_validate(row)

    def update_fir(self, record_id, patch):
        changes = as_changes(patch)
        check_fields(changes, FIR_FIELDS, "FIR")

        with self._guard("update FIR") as claimed:
            row = self.session.get(orm.FirRecord, record_id)
            if row is None:
                return None

            number = changes.get("fir_number")
            if number:
                if self._exists(orm.FirRecord.fir_number, number, exclude_id=record_id):
                    raise ConflictError("firNumber", number)
                claimed["firNumber"] = number

            self._apply(row, changes)
            row.updated_at = utcnow()
            self._commit()
            return FirRecord.model_validate(row)

    def delete_fir(self, record_id):
        with self._guard("delete FIR"):
            removed = self._delete(orm.FirRecord, record_id)
            self._commit()
        if removed:
            logger.info("FIR deleted | %s", record_id)
        return removed

    def search_firs(self, query="", filters=None):
        wanted = active_filters(filters, FIR_FILTERS)
        with self._guard("search FIRs"):
            rows = self._search(orm.FirRecord, query, wanted, FIR_TEXT_FIELDS)
            return [FirRecord.model_validate(r) for r in rows]

    # ------------------- STATISTICS -------------------
    def _count_by(self, column):
        stmt = (
            select(column, func.count())
            .group_by(column)
            .order_by(func.count().desc(), column)
        )
        return self.session.execute(stmt).all()

    def statistics(self):
        with self._guard("statistics"):
            total = self.session.scalar(
                select(func.count()).select_from(orm.CriminalRecord)
            )
            firs = self.session.scalar(
                select(func.count()).select_from(orm.FirRecord)
            )
            by_type = self._count_by(orm.CriminalRecord.crime_type)
            by_status = self._count_by(orm.CriminalRecord.case_status)

        status_counts = {status: count for status, count in by_status}
        return Statistics(
            total_criminals=total,
            active_firs=firs,
            solved_cases=status_counts.get(CaseStatus.CLOSED.value, 0),
            pending_cases=status_counts.get(CaseStatus.PENDING.value, 0),
            crime_type_distribution=[CrimeTypeCount(type=t, count=n) for t, n in by_type],
            case_status_distribution=[CaseStatusCount(status=s, count=n) for s, n in by_status],
        )

    def ping(self):
        with self._guard("ping"):
            self.session.execute(select(1))
        return True

    def close(self):
        self.session.remove()
        self.db.engine.dispose()
