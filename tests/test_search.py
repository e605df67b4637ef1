import pytest

from conftest import criminal_draft, fir_draft
from storage.search import CRIMINAL_FILTERS, CRIMINAL_TEXT_FIELDS, search


@pytest.fixture
def criminals(store):
    return [
        store.insert_criminal(criminal_draft(name="Theft Ring Leader", crime_type="theft",
                                             case_status="closed", fir_number="FIR-2024-000001")),
        store.insert_criminal(criminal_draft(name="Alice Theftwood", crime_type="fraud",
                                             case_status="open", fir_number="FIR-2024-000002")),
        store.insert_criminal(criminal_draft(name="Bob Stone", crime_type="theft",
                                             case_status="closed", fir_number="FIR-2024-THEFT")),
        store.insert_criminal(criminal_draft(name="Carol Price", crime_type="assault",
                                             case_status="pending", fir_number="FIR-2024-000004")),
    ]


def _names(records):
    return sorted(r.name for r in records)


def test_empty_query_and_no_filters_is_identity(store, criminals):
    assert _names(store.search_criminals("", {})) == _names(criminals)
    assert _names(store.search_criminals(None, None)) == _names(criminals)


def test_text_search_is_case_insensitive_over_name_and_report_number(store, criminals):
    found = store.search_criminals("THEFT", {})
    assert _names(found) == ["Alice Theftwood", "Bob Stone", "Theft Ring Leader"]


def test_text_search_and_filter_combine(store, criminals):
    found = store.search_criminals("theft", {"status": "closed"})
    assert _names(found) == ["Bob Stone", "Theft Ring Leader"]


def test_filters_are_anded(store, criminals):
    found = store.search_criminals("", {"crime_type": "theft", "status": "closed"})
    assert _names(found) == ["Bob Stone", "Theft Ring Leader"]

    assert store.search_criminals("", {"crime_type": "fraud", "status": "closed"}) == []


def test_empty_filter_values_are_ignored(store, criminals):
    found = store.search_criminals("", {"crime_type": "", "status": None})
    assert len(found) == len(criminals)


def test_unknown_filter_is_rejected(store, criminals):
    with pytest.raises(ValueError):
        store.search_criminals("", {"colour": "red"})


def test_wildcard_characters_match_literally(store, criminals):
    store.insert_criminal(criminal_draft(name="Discount 100% Real"))
    assert _names(store.search_criminals("100%", {})) == ["Discount 100% Real"]
    assert store.search_criminals("_", {}) == []


def test_fir_search_over_number_and_description(store):
    criminal = store.insert_criminal(criminal_draft())
    store.insert_fir(fir_draft(fir_number="FIR-2024-500001", description="Stolen bicycle"))
    store.insert_fir(fir_draft(fir_number="FIR-2024-500002", description="Broken window",
                               criminal_id=criminal.id))

    assert [f.fir_number for f in store.search_firs("bicycle")] == ["FIR-2024-500001"]
    assert [f.fir_number for f in store.search_firs("500002")] == ["FIR-2024-500002"]
    assert [f.fir_number for f in store.search_firs("", {"criminal_id": criminal.id})] == ["FIR-2024-500002"]
    assert len(store.search_firs("")) == 2


def test_search_function_on_plain_records(criminals):
    found = search(criminals, "stone", {}, CRIMINAL_TEXT_FIELDS, CRIMINAL_FILTERS)
    assert _names(found) == ["Bob Stone"]


def test_text_search_folds_accented_letters(store, criminals):
    store.insert_criminal(criminal_draft(name="ÉMILE Zola"))
    store.insert_fir(fir_draft(description="Vol à l'ÉTALAGE"))

    assert _names(store.search_criminals("émile", {})) == ["ÉMILE Zola"]
    assert [f.description for f in store.search_firs("étalage")] == ["Vol à l'ÉTALAGE"]
