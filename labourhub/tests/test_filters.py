from types import SimpleNamespace

from labourhub.filters import job_matches_filters, parse_job_filters
from labourhub.schemas import JobFilters


def _job(**overrides):
    base = {
        "budget": "100",
        "title": "Fix kitchen sink",
        "description": "Leaking pipe under the sink",
        "location": "North London",
        "skills": ["Plumbing", "tiling"],
    }
    base.update(overrides)
    return SimpleNamespace(**base)


def test_empty_filters_match_everything():
    f = JobFilters()
    assert f.has_predicates() is False
    assert job_matches_filters(_job(), f) is True
    assert job_matches_filters(_job(budget="not a number", skills=None), f) is True


def test_budget_range_is_inclusive():
    job = _job(budget="100")
    assert job_matches_filters(job, JobFilters(min_budget=100)) is True
    assert job_matches_filters(job, JobFilters(max_budget=100)) is True
    assert job_matches_filters(job, JobFilters(min_budget=50, max_budget=150)) is True
    assert job_matches_filters(job, JobFilters(min_budget=101)) is False
    assert job_matches_filters(job, JobFilters(max_budget=99.5)) is False


def test_non_numeric_budget_fails_numeric_filters():
    for budget in ("negotiable", "", "  ", "NaN", "1_000", "inf", "-Infinity", "1e999", "0x10"):
        job = _job(budget=budget)
        assert job_matches_filters(job, JobFilters(min_budget=0)) is False
        assert job_matches_filters(job, JobFilters(max_budget=1_000_000)) is False
        # other filters are unaffected by a bad budget
        assert job_matches_filters(job, JobFilters(q="sink")) is True


def test_decimal_budget_parses():
    assert job_matches_filters(_job(budget="99.99"), JobFilters(min_budget=99.5, max_budget=100)) is True


def test_q_matches_title_or_description_case_insensitive():
    assert job_matches_filters(_job(), JobFilters(q="KITCHEN")) is True
    assert job_matches_filters(_job(), JobFilters(q="pipe")) is True
    assert job_matches_filters(_job(), JobFilters(q="roof")) is False


def test_location_substring():
    assert job_matches_filters(_job(), JobFilters(location="london")) is True
    assert job_matches_filters(_job(), JobFilters(location="Leeds")) is False


def test_skills_use_set_intersection():
    job = _job(skills=["plumbing", "tiling"])
    assert job_matches_filters(job, JobFilters(skills=["electrical", "plumbing"])) is True
    assert job_matches_filters(job, JobFilters(skills=["electrical", "carpentry"])) is False


def test_skills_are_case_folded_and_missing_skills_never_match():
    assert job_matches_filters(_job(skills=["Plumbing"]), JobFilters(skills=["plumbing"])) is True
    assert job_matches_filters(_job(skills=None), JobFilters(skills=["plumbing"])) is False


def test_filters_combine_with_and():
    f = JobFilters(min_budget=50, q="sink", location="london", skills=["tiling"])
    assert job_matches_filters(_job(), f) is True
    assert job_matches_filters(_job(location="Paris"), f) is False


def test_parse_job_filters_ignores_bad_values():
    f = parse_job_filters(status="bogus", min_budget="abc", max_budget="-5", q="   ", location="", skills=" , ")
    assert f == JobFilters()
    assert f.status == "all"

    for raw in ("1_000", "inf", "infinity", "nan", "1e999"):
        assert parse_job_filters(min_budget=raw, max_budget=raw) == JobFilters()


def test_parse_job_filters_normalizes():
    f = parse_job_filters(
        status=" Open ",
        min_budget="50",
        max_budget="300.5",
        q=" sink ",
        location=" London",
        skills="Plumbing, repair,plumbing",
    )
    assert f.status == "open"
    assert f.min_budget == 50
    assert f.max_budget == 300.5
    assert f.q == "sink"
    assert f.location == "London"
    assert f.skills == ["plumbing", "repair"]


def test_budget_number_forms():
    assert parse_job_filters(min_budget=" 1e3 ").min_budget == 1000
    assert parse_job_filters(min_budget=".5").min_budget == 0.5
    assert parse_job_filters(min_budget="+20").min_budget == 20
    assert job_matches_filters(_job(budget=" 1000 "), JobFilters(min_budget=500)) is True
    assert job_matches_filters(_job(budget="1_000"), JobFilters(min_budget=500)) is False
