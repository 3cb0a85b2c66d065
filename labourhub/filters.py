"""
Job listing filters.

``parse_job_filters`` turns raw query-string values into a ``JobFilters``;
``job_matches_filters`` is the pure predicate applied to each job row.
"""
from __future__ import annotations
import math
import re
from typing import Any

from .schemas import JobFilters

VALID_STATUS_FILTERS = ("open", "reserved", "closed", "all")

# decimal or exponent form only: no "1_000", "inf" or "nan"
NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def _parse_amount(raw: str | None) -> float | None:
    if raw is None:
        return None
    raw = raw.strip()
    if not NUMBER_RE.match(raw):
        return None
    n = float(raw)
    if not math.isfinite(n):
        return None
    return n


def _clean_text(raw: str | None) -> str | None:
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def parse_job_filters(
    status: str | None = None,
    min_budget: str | None = None,
    max_budget: str | None = None,
    q: str | None = None,
    location: str | None = None,
    skills: str | None = None,
) -> JobFilters:
    """Invalid values are dropped rather than rejected.

    ``status`` outside open/reserved/closed/all becomes "all"; negative or
    non-numeric budgets are ignored; ``skills`` is comma-separated.
    """
    s = (status or "").strip().lower()
    lo = _parse_amount(min_budget)
    hi = _parse_amount(max_budget)

    skill_list = None
    if skills:
        # dict.fromkeys: de-dupe, keep order
        parsed = list(dict.fromkeys(p.strip().lower() for p in skills.split(",") if p.strip()))
        skill_list = parsed or None

    return JobFilters(
        status=s if s in VALID_STATUS_FILTERS else "all",
        min_budget=lo if lo is not None and lo >= 0 else None,
        max_budget=hi if hi is not None and hi >= 0 else None,
        q=_clean_text(q),
        location=_clean_text(location),
        skills=skill_list,
    )


def _budget_number(budget: Any) -> float | None:
    if budget is None:
        return None
    return _parse_amount(str(budget))


def _job_skills(skills: Any) -> set[str]:
    if not skills:
        return set()
    return {s.lower() for s in skills if isinstance(s, str)}


def job_matches_filters(job: Any, filters: JobFilters) -> bool:
    """Return True if the job satisfies every filter that is set.

    - min_budget / max_budget: inclusive; a budget that isn't a number fails
    - q: case-insensitive substring of title OR description
    - location: case-insensitive substring of location
    - skills: job must share AT LEAST ONE skill with the filter

    ``job`` is anything exposing budget, title, description, location and
    skills attributes (normally a ``models.Job``). Status is filtered in
    the query, not here.
    """
    if filters.min_budget is not None or filters.max_budget is not None:
        amount = _budget_number(job.budget)
        if amount is None:
            return False
        if filters.min_budget is not None and amount < filters.min_budget:
            return False
        if filters.max_budget is not None and amount > filters.max_budget:
            return False

    if filters.q:
        needle = filters.q.lower()
        title = (job.title or "").lower()
        description = (job.description or "").lower()
        if needle not in title and needle not in description:
            return False

    if filters.location:
        if filters.location.lower() not in (job.location or "").lower():
            return False

    if filters.skills:
        wanted = {s.lower() for s in filters.skills}
        if not wanted & _job_skills(job.skills):
            return False

    return True
