import random
import uuid

from models.schemas import utcnow
from storage.errors import ConflictError

REPORT_NUMBER_ATTEMPTS = 5


def new_id():
    return str(uuid.uuid4())


def new_report_number(now=None):
    """``FIR-<year>-<6 digits>``. Not checked against existing numbers."""
    year = (now or utcnow()).year
    return f"FIR-{year}-{random.randint(100000, 999999):06d}"


def unique_report_number(is_taken, attempts=REPORT_NUMBER_ATTEMPTS):
    for _ in range(attempts):
        number = new_report_number()
        if not is_taken(number):
            return number
    raise ConflictError("firNumber", number)
