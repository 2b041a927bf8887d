"""
Lookup and date helpers shared by the view controllers.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
import json
import logging

from ..core.permissions import UserRole
from .state import ApplicationState

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def today() -> str:
    return date.today().strftime(DATE_FORMAT)


def now_local() -> str:
    return datetime.now().isoformat(timespec="seconds")


def date_of(timestamp: Optional[str]) -> str:
    """
    Date part (YYYY-MM-DD) of an ISO timestamp; empty for blank values.
    """
    return (timestamp or "")[:10]


def shift_date(day: str, days: int) -> str:
    return (datetime.strptime(day, DATE_FORMAT) + timedelta(days=days)).strftime(DATE_FORMAT)


def week_from(start: str, length: int = 7) -> List[str]:
    """
    Consecutive dates starting at `start`.
    """
    return [shift_date(start, offset) for offset in range(length)]


def calculate_age(dob: Optional[str], on: Optional[date] = None) -> str:
    """
    Age in whole years for a YYYY-MM-DD birth date.

    Returns:
        str: Age as text, or "" when the date is missing or malformed
    """
    if not dob:
        return ""
    try:
        born = datetime.strptime(dob[:10], DATE_FORMAT).date()
    except ValueError:
        return ""
    on = on or date.today()
    years = on.year - born.year - ((on.month, on.day) < (born.month, born.day))
    return str(max(years, 0))


def parse_image_links(value: Any) -> List[str]:
    """
    Decode a stored image_links cell. Malformed values count as no links.
    """
    if isinstance(value, list):
        return [str(link) for link in value]
    if not value:
        return []
    try:
        links = json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed image_links value: {value!r}")
        return []
    return [str(link) for link in links] if isinstance(links, list) else []


# Lookups

def get_visit(state: ApplicationState, visit_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return state.find("visits", visit_id)


def get_patient(state: ApplicationState, patient_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return state.find("patients", patient_id)


def get_patient_by_visit(state: ApplicationState, visit_id: Optional[str]) -> Optional[Dict[str, Any]]:
    visit = get_visit(state, visit_id)
    return get_patient(state, visit.get("patient_id")) if visit else None


def get_user(state: ApplicationState, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return state.find("users", user_id)


def doctor_name(state: ApplicationState, user_id: Optional[str]) -> str:
    user = get_user(state, user_id)
    return user.get("full_name", "") if user else "Unassigned"


def radiologists(state: ApplicationState) -> List[Dict[str, Any]]:
    return [user for user in state.users if user.get("role") == UserRole.RADIOLOGIST.value]


def studies_for_visit(state: ApplicationState, visit_id: str) -> List[Dict[str, Any]]:
    visit_id = state.resolve_id(visit_id)
    return [study for study in state.studies if study.get("visit_id") == visit_id]


def studies_on(state: ApplicationState, day: str, statuses: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
    """
    Studies whose visit checked in on `day`, optionally limited to statuses,
    ordered by check-in time.

    Args:
        state: Application state
        day: YYYY-MM-DD
        statuses: Allowed study statuses, None for all

    Returns:
        List of study records
    """
    allowed = {str(status) for status in statuses} if statuses is not None else None
    matches = []
    for study in state.studies:
        if allowed is not None and study.get("status") not in allowed:
            continue
        visit = get_visit(state, study.get("visit_id"))
        if visit is None or date_of(visit.get("check_in_time")) != day:
            continue
        matches.append((visit.get("check_in_time") or "", study))
    matches.sort(key=lambda pair: pair[0])
    return [study for _, study in matches]


def visit_sort_key(visit: Dict[str, Any]) -> str:
    return visit.get("created_at") or visit.get("check_in_time") or ""


def recent_visits(state: ApplicationState, limit: int = 5) -> List[Dict[str, Any]]:
    """
    Newest visits first.
    """
    return sorted(state.visits, key=visit_sort_key, reverse=True)[:limit]


def search_patients(state: ApplicationState, query: str) -> List[Dict[str, Any]]:
    """
    Case-insensitive name match or phone substring match. Queries shorter
    than two characters match nothing.
    """
    query = (query or "").strip()
    if len(query) < 2:
        return []
    needle = query.lower()
    return [
        patient for patient in state.patients
        if needle in (patient.get("full_name") or "").lower() or query in (patient.get("phone") or "")
    ]
