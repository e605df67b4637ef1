import logging

from models.schemas import CriminalRecord, FirRecord, User, utcnow
from storage.base import (
    CRIMINAL_FIELDS,
    FIR_FIELDS,
    USER_FIELDS,
    Storage,
    as_changes,
    check_fields,
    hash_password,
)
from storage.errors import ConflictError
from storage.ids import new_id, new_report_number, unique_report_number

logger = logging.getLogger("records.storage")


class MemoryStorage(Storage):
    """Process-local store. State lives in dicts and dies with the process."""

    def __init__(self):
        self._users = {}
        self._criminals = {}
        self._firs = {}

    @staticmethod
    def _copy(record):
        return record.model_copy() if record is not None else None

    @staticmethod
    def _merge(model, record, changes):
        return model.model_validate({**record.model_dump(), **changes})

    # ------------------- USERS -------------------
    def get_user(self, user_id):
        return self._copy(self._users.get(user_id))

    def get_user_by_username(self, username):
        for user in self._users.values():
            if user.username == username:
                return self._copy(user)
        return None

    def list_users(self):
        return [self._copy(u) for u in self._users.values()]

    def insert_user(self, draft):
        if self.get_user_by_username(draft.username):
            raise ConflictError("username", draft.username)

        user = User(
            **draft.model_dump(exclude={"password"}),
            id=new_id(),
            password=hash_password(draft.password),
            last_login=None,
            is_active=True,
            created_at=utcnow(),
        )
        self._users[user.id] = user
        logger.info("User created | %s | %s", user.username, user.role.value)
        return self._copy(user)

    def update_user(self, user_id, patch):
        user = self._users.get(user_id)
        if user is None:
            return None

        changes = as_changes(patch)
        check_fields(changes, USER_FIELDS, "user")
        username = changes.get("username")
        if username and username != user.username and self.get_user_by_username(username):
            raise ConflictError("username", username)
        if changes.get("password"):
            changes["password"] = hash_password(changes["password"])

        user = self._merge(User, user, changes)
        self._users[user_id] = user
        return self._copy(user)

    def delete_user(self, user_id):
        removed = self._users.pop(user_id, None) is not None
        if removed:
            logger.info("User deleted | %s", user_id)
        return removed

    # ------------------- CRIMINAL RECORDS -------------------
    def get_criminal(self, record_id):
        return self._copy(self._criminals.get(record_id))

    def list_criminals(self):
        return [self._copy(r) for r in self._criminals.values()]

    def insert_criminal(self, draft):
        now = utcnow()
        fields = draft.model_dump()
        fields["fir_number"] = fields.get("fir_number") or new_report_number(now)

        record = CriminalRecord(**fields, id=new_id(), created_at=now, updated_at=now)
        self._criminals[record.id] = record
        logger.info("Criminal record created | %s | %s", record.id, record.fir_number)
        return self._copy(record)

    def update_criminal(self, record_id, patch):
        record = self._criminals.get(record_id)
        if record is None:
            return None

        changes = as_changes(patch)
        check_fields(changes, CRIMINAL_FIELDS, "criminal record")
        changes["updated_at"] = utcnow()

        record = self._merge(CriminalRecord, record, changes)
        self._criminals[record_id] = record
        return self._copy(record)

    def delete_criminal(self, record_id):
        if self._criminals.pop(record_id, None) is None:
            return False

        for fir_id, fir in list(self._firs.items()):
            if fir.criminal_id == record_id:
                self._firs[fir_id] = fir.model_copy(update={"criminal_id": None})
        logger.info("Criminal record deleted | %s", record_id)
        return True

    # ------------------- FIR RECORDS -------------------
    def _fir_number_taken(self, number, exclude_id=None):
        return any(
            fir.fir_number == number and fir.id != exclude_id
            for fir in self._firs.values()
        )

    def get_fir(self, record_id):
        return self._copy(self._firs.get(record_id))

    def list_firs(self):
        return [self._copy(r) for r in self._firs.values()]

    def insert_fir(self, draft):
        now = utcnow()
        fields = draft.model_dump()
        if fields.get("fir_number"):
            if self._fir_number_taken(fields["fir_number"]):
                raise ConflictError("firNumber", fields["fir_number"])
        else:
            fields["fir_number"] = unique_report_number(self._fir_number_taken)
        fields["fir_date"] = fields.get("fir_date") or now

        fir = FirRecord(**fields, id=new_id(), created_at=now, updated_at=now)
        self._firs[fir.id] = fir
        logger.info("FIR registered | %s | %s", fir.id, fir.fir_number)
        return self._copy(fir)

    def update_fir(self, record_id, patch):
        fir = self._firs.get(record_id)
        if fir is None:
            return None

        changes = as_changes(patch)
        check_fields(changes, FIR_FIELDS, "FIR")
        number = changes.get("fir_number")
        if number and self._fir_number_taken(number, exclude_id=record_id):
            raise ConflictError("firNumber", number)
        changes["updated_at"] = utcnow()

        fir = self._merge(FirRecord, fir, changes)
        self._firs[record_id] = fir
        return self._copy(fir)

    def delete_fir(self, record_id):
        removed = self._firs.pop(record_id, None) is not None
        if removed:
            logger.info("FIR deleted | %s", record_id)
        return removed
