from enum import Enum

CRIMINAL_TEXT_FIELDS = ("name", "fir_number")
CRIMINAL_FILTERS = {"crime_type": "crime_type", "status": "case_status"}

FIR_TEXT_FIELDS = ("fir_number", "description")
FIR_FILTERS = {"criminal_id": "criminal_id"}


def plain(value):
    return value.value if isinstance(value, Enum) else value


def active_filters(filters, allowed):
    """Map filter names to record attributes, dropping unset values."""
    active = {}
    for key, value in (filters or {}).items():
        if key not in allowed:
            raise ValueError(f"Unknown filter '{key}'")
        if value is None or value == "":
            continue
        active[allowed[key]] = plain(value)
    return active


def matches_text(record, query, fields):
    needle = query.lower()
    for field in fields:
        value = getattr(record, field)
        if value and needle in value.lower():
            return True
    return False


def search(records, query="", filters=None, text_fields=(), filter_fields=None):
    wanted = active_filters(filters, filter_fields or {})
    results = []
    for record in records:
        if query and not matches_text(record, query, text_fields):
            continue
        if any(plain(getattr(record, attr)) != value for attr, value in wanted.items()):
            continue
        results.append(record)
    return results
