from conftest import criminal_draft, fir_draft


def _distribution(items, key):
    return {getattr(item, key): item.count for item in items}


def test_empty_store(store):
    stats = store.statistics()

    assert stats.total_criminals == 0
    assert stats.active_firs == 0
    assert stats.crime_type_distribution == []
    assert stats.case_status_distribution == []


def test_one_of_each_status(store):
    for status in ("open", "pending", "closed"):
        store.insert_criminal(criminal_draft(case_status=status))

    stats = store.statistics()

    assert stats.total_criminals == 3
    assert stats.solved_cases == 1
    assert stats.pending_cases == 1
    assert _distribution(stats.case_status_distribution, "status") == {
        "open": 1, "pending": 1, "closed": 1,
    }


def test_distributions_sum_to_total_and_skip_empty_groups(store):
    store.insert_criminal(criminal_draft(crime_type="theft"))
    store.insert_criminal(criminal_draft(crime_type="theft", case_status="closed"))
    store.insert_criminal(criminal_draft(crime_type="fraud", case_status="closed"))
    store.insert_fir(fir_draft())
    store.insert_fir(fir_draft())

    stats = store.statistics()

    assert stats.active_firs == 2
    assert _distribution(stats.crime_type_distribution, "type") == {"theft": 2, "fraud": 1}
    assert _distribution(stats.case_status_distribution, "status") == {"open": 1, "closed": 2}
    assert "pending" not in _distribution(stats.case_status_distribution, "status")
    assert sum(i.count for i in stats.crime_type_distribution) == stats.total_criminals
    assert sum(i.count for i in stats.case_status_distribution) == stats.total_criminals


def test_statistics_follow_updates_and_deletes(store):
    record = store.insert_criminal(criminal_draft())
    store.update_criminal(record.id, {"case_status": "closed"})
    assert store.statistics().solved_cases == 1

    store.delete_criminal(record.id)
    stats = store.statistics()
    assert stats.total_criminals == 0
    assert stats.solved_cases == 0


def test_json_uses_camel_case(store):
    store.insert_criminal(criminal_draft())
    payload = store.statistics().to_json()

    assert set(payload) == {
        "totalCriminals", "activeFirs", "solvedCases", "pendingCases",
        "crimeTypeDistribution", "caseStatusDistribution",
    }
    assert payload["crimeTypeDistribution"] == [{"type": "theft", "count": 1}]
