"""
Study workflow state machine.

    Waiting -> Scanning -> Reporting -> Reported -> Completed
                                    \\______________/

Reported may be re-entered (a report is saved or printed again). Completed is
terminal. No edge points backwards.
"""
from enum import Enum
from typing import Dict, Set

from .exceptions import InvalidTransitionException


class StudyStatus(str, Enum):
    WAITING = "Waiting"
    SCANNING = "Scanning"
    REPORTING = "Reporting"
    REPORTED = "Reported"
    COMPLETED = "Completed"


TRANSITIONS: Dict[StudyStatus, Set[StudyStatus]] = {
    StudyStatus.WAITING: {StudyStatus.SCANNING},
    StudyStatus.SCANNING: {StudyStatus.REPORTING},
    StudyStatus.REPORTING: {StudyStatus.REPORTED, StudyStatus.COMPLETED},
    StudyStatus.REPORTED: {StudyStatus.REPORTED, StudyStatus.COMPLETED},
    StudyStatus.COMPLETED: set(),
}

# Statuses in which a report may be written
REPORTABLE = {StudyStatus.REPORTING, StudyStatus.REPORTED, StudyStatus.COMPLETED}

# Statuses whose report is visible to the patient
RELEASED = {StudyStatus.REPORTED, StudyStatus.COMPLETED}


def _label(value) -> str:
    return value.value if isinstance(value, Enum) else str(value or "")


def parse_status(value) -> StudyStatus:
    """
    Convert a stored status string. Blank rows count as Waiting.

    Raises:
        InvalidTransitionException: If the value is not a known status
    """
    if isinstance(value, StudyStatus):
        return value
    if value in (None, ""):
        return StudyStatus.WAITING
    try:
        return StudyStatus(value)
    except ValueError:
        raise InvalidTransitionException(str(value), "?")


def can_transition(current, requested) -> bool:
    """
    Check whether a status change follows a legal edge.

    Args:
        current: Current status (enum or stored string)
        requested: Requested status

    Returns:
        bool: True if the edge exists
    """
    try:
        current = parse_status(current)
        requested = StudyStatus(requested)
    except (ValueError, InvalidTransitionException):
        return False
    return requested in TRANSITIONS[current]


def check_transition(current, requested) -> StudyStatus:
    """
    Validate a status change.

    Returns:
        StudyStatus: The requested status

    Raises:
        InvalidTransitionException: If the change is not a legal edge
    """
    if not can_transition(current, requested):
        raise InvalidTransitionException(_label(current), _label(requested))
    return StudyStatus(requested)


def status_after_report_save(current) -> StudyStatus:
    """
    Status a study takes when its report is saved.

    Saving on a completed study keeps it completed; otherwise the study
    becomes Reported, which requires it to be in the reporting stage.

    Raises:
        InvalidTransitionException: If the study has not reached reporting
    """
    current = parse_status(current)
    if current == StudyStatus.COMPLETED:
        return current
    return check_transition(current, StudyStatus.REPORTED)


def is_released(status) -> bool:
    try:
        return parse_status(status) in RELEASED
    except InvalidTransitionException:
        return False
