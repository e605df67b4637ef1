from models.schemas import CaseStatus, CaseStatusCount, CrimeTypeCount, Statistics
from storage.search import plain


def _group(values):
    """Counts per distinct value, in order of first appearance."""
    counts = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return counts


def compute_statistics(criminals, firs):
    statuses = [plain(c.case_status) for c in criminals]
    by_type = _group(c.crime_type for c in criminals)
    by_status = _group(statuses)

    return Statistics(
        total_criminals=len(criminals),
        active_firs=len(firs),
        solved_cases=by_status.get(CaseStatus.CLOSED.value, 0),
        pending_cases=by_status.get(CaseStatus.PENDING.value, 0),
        crime_type_distribution=[
            CrimeTypeCount(type=t, count=n) for t, n in by_type.items()
        ],
        case_status_distribution=[
            CaseStatusCount(status=s, count=n) for s, n in by_status.items()
        ],
    )
