from abc import ABC, abstractmethod

from werkzeug.security import check_password_hash, generate_password_hash

from models.schemas import utcnow
from storage.search import (
    CRIMINAL_FILTERS,
    CRIMINAL_TEXT_FIELDS,
    FIR_FILTERS,
    FIR_TEXT_FIELDS,
    search,
)
from storage.stats import compute_statistics

USER_FIELDS = {"username", "password", "role", "name", "is_active", "last_login"}
CRIMINAL_FIELDS = {
    "name", "age", "gender", "crime_type", "fir_number",
    "case_status", "arrest_date", "address", "photo",
}
FIR_FIELDS = {"fir_number", "criminal_id", "fir_date", "description"}


def hash_password(password):
    return generate_password_hash(password, method='pbkdf2:sha256')


def verify_password(user, password):
    return check_password_hash(user.password, password)


def as_changes(patch):
    """Accept a patch model or a plain mapping of field -> value."""
    if hasattr(patch, "changes"):
        return patch.changes()
    return dict(patch or {})


def check_fields(changes, allowed, kind):
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update {kind} field(s): {', '.join(sorted(unknown))}")


class Storage(ABC):

    # ------------------- USERS -------------------
    @abstractmethod
    def get_user(self, user_id):
        ...

    @abstractmethod
    def get_user_by_username(self, username):
        ...

    @abstractmethod
    def list_users(self):
        ...

    @abstractmethod
    def insert_user(self, draft):
        """Store a new user; the plaintext password in ``draft`` is hashed."""

    @abstractmethod
    def update_user(self, user_id, patch):
        """Merge ``patch``; a supplied plaintext password is re-hashed."""

    @abstractmethod
    def delete_user(self, user_id):
        ...

    def record_login(self, user_id):
        return self.update_user(user_id, {"last_login": utcnow()})

    # ------------------- CRIMINAL RECORDS -------------------
    @abstractmethod
    def get_criminal(self, record_id):
        ...

    @abstractmethod
    def list_criminals(self):
        ...

    @abstractmethod
    def insert_criminal(self, draft):
        """Store a new record, generating a FIR number when none is given."""

    @abstractmethod
    def update_criminal(self, record_id, patch):
        ...

    @abstractmethod
    def delete_criminal(self, record_id):
        """Remove the record and clear ``criminal_id`` on FIRs that point at it."""

    def search_criminals(self, query="", filters=None):
        return search(
            self.list_criminals(), query, filters,
            text_fields=CRIMINAL_TEXT_FIELDS, filter_fields=CRIMINAL_FILTERS,
        )

    # ------------------- FIR RECORDS -------------------
    @abstractmethod
    def get_fir(self, record_id):
        ...

    @abstractmethod
    def list_firs(self):
        ...

    @abstractmethod
    def insert_fir(self, draft):
        """Store a new FIR; a missing number is generated and checked for reuse."""

    @abstractmethod
    def update_fir(self, record_id, patch):
        ...

    @abstractmethod
    def delete_fir(self, record_id):
        ...

    def search_firs(self, query="", filters=None):
        return search(
            self.list_firs(), query, filters,
            text_fields=FIR_TEXT_FIELDS, filter_fields=FIR_FILTERS,
        )

    # ------------------- STATISTICS -------------------
    def statistics(self):
        return compute_statistics(self.list_criminals(), self.list_firs())

    def ping(self):
        """Cheap liveness probe; raises ``StorageError`` when the backend is down."""
        return True

    def close(self):
        pass
