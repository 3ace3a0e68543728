"""Role-scoped access rules.

Every protected operation is looked up in POLICY by (operation, role). A
missing entry, including any role not listed here, is a denial. An entry
names the Scope the handler must narrow its query or write by.
"""

from dataclasses import dataclass
from enum import Enum

from reporting_backend.auth.sessions import CallerContext
from reporting_backend.core.errors import Forbidden


class Role(str, Enum):
    STUDENT = 'student'
    LECTURER = 'lecturer'
    PRINCIPAL_LECTURER = 'principal_lecturer'
    PROGRAM_LEADER = 'program_leader'


class Operation(str, Enum):
    LIST_COURSES = 'list_courses'
    CREATE_COURSE = 'create_course'
    LIST_CLASSES = 'list_classes'
    LIST_REPORTS = 'list_reports'
    LIST_ENROLLED_REPORTS = 'list_enrolled_reports'
    CREATE_REPORT = 'create_report'
    SUBMIT_RATING = 'submit_rating'
    SUBMIT_FEEDBACK = 'submit_feedback'
    ASSIGN_LECTURER = 'assign_lecturer'
    VIEW_REPORT_DETAIL = 'view_report_detail'
    EXPORT_REPORTS = 'export_reports'
    SEARCH_REPORTS = 'search_reports'
    MONITORING = 'monitoring'
    LIST_FACULTIES = 'list_faculties'
    PRINCIPAL_COURSE_OVERVIEW = 'principal_course_overview'
    PROGRAM_COURSE_OVERVIEW = 'program_course_overview'
    LIST_LECTURERS = 'list_lecturers'


class Scope(str, Enum):
    ALL = 'all'
    LED_COURSES = 'led_courses'
    ENROLLED_CLASSES = 'enrolled_classes'
    TAUGHT_CLASSES = 'taught_classes'
    AUTHORED_REPORTS = 'authored_reports'
    ENROLLED_CLASS_REPORTS = 'enrolled_class_reports'
    LED_FACULTY_REPORTS = 'led_faculty_reports'
    LED_COURSE_REPORTS = 'led_course_reports'


@dataclass(frozen=True)
class Allow:
    scope: Scope


@dataclass(frozen=True)
class Deny:
    reason: str = 'Access denied'


Decision = Allow | Deny

_REPORT_VISIBILITY = {
    Role.STUDENT: Scope.ENROLLED_CLASS_REPORTS,
    Role.LECTURER: Scope.AUTHORED_REPORTS,
    Role.PRINCIPAL_LECTURER: Scope.LED_FACULTY_REPORTS,
    Role.PROGRAM_LEADER: Scope.ALL,
}

POLICY: dict[Operation, dict[Role, Scope]] = {
    Operation.LIST_COURSES: {
        Role.LECTURER: Scope.ALL,
        Role.PRINCIPAL_LECTURER: Scope.LED_COURSES,
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.CREATE_COURSE: {
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.LIST_CLASSES: {
        Role.STUDENT: Scope.ENROLLED_CLASSES,
        Role.LECTURER: Scope.TAUGHT_CLASSES,
        Role.PRINCIPAL_LECTURER: Scope.ALL,
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.LIST_REPORTS: dict(_REPORT_VISIBILITY),
    Operation.LIST_ENROLLED_REPORTS: {
        Role.STUDENT: Scope.ENROLLED_CLASS_REPORTS,
    },
    Operation.CREATE_REPORT: {
        Role.LECTURER: Scope.ALL,
    },
    # The rating write itself is constrained to reports of enrolled classes.
    Operation.SUBMIT_RATING: {
        Role.STUDENT: Scope.ENROLLED_CLASS_REPORTS,
    },
    Operation.SUBMIT_FEEDBACK: {
        Role.PRINCIPAL_LECTURER: Scope.ALL,
    },
    Operation.ASSIGN_LECTURER: {
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.VIEW_REPORT_DETAIL: dict(_REPORT_VISIBILITY),
    Operation.EXPORT_REPORTS: {
        Role.LECTURER: Scope.AUTHORED_REPORTS,
        Role.PRINCIPAL_LECTURER: Scope.LED_FACULTY_REPORTS,
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.SEARCH_REPORTS: dict(_REPORT_VISIBILITY),
    Operation.MONITORING: {
        Role.STUDENT: Scope.ENROLLED_CLASS_REPORTS,
        Role.LECTURER: Scope.AUTHORED_REPORTS,
        Role.PRINCIPAL_LECTURER: Scope.LED_COURSE_REPORTS,
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.LIST_FACULTIES: {role: Scope.ALL for role in Role},
    Operation.PRINCIPAL_COURSE_OVERVIEW: {
        Role.PRINCIPAL_LECTURER: Scope.LED_COURSES,
    },
    Operation.PROGRAM_COURSE_OVERVIEW: {
        Role.PROGRAM_LEADER: Scope.ALL,
    },
    Operation.LIST_LECTURERS: {
        Role.PROGRAM_LEADER: Scope.ALL,
    },
}

DENIAL_MESSAGES = {
    Operation.LIST_COURSES: 'Students cannot list courses.',
    Operation.LIST_ENROLLED_REPORTS: 'Only students can view reports for their enrolled classes.',
    Operation.CREATE_COURSE: 'Access denied. Only program leaders can create courses.',
    Operation.CREATE_REPORT: 'Only lecturers can submit reports.',
    Operation.SUBMIT_RATING: 'Only students can rate reports.',
    Operation.SUBMIT_FEEDBACK: 'Only principal lecturers can submit feedback.',
    Operation.ASSIGN_LECTURER: 'Only program leaders can assign lecturers.',
}


def decide(role: str, operation: Operation) -> Decision:
    try:
        known_role = Role(role)
    except ValueError:
        return Deny(DENIAL_MESSAGES.get(operation, 'Access denied'))

    scope = POLICY.get(operation, {}).get(known_role)
    if scope is None:
        return Deny(DENIAL_MESSAGES.get(operation, 'Access denied'))
    return Allow(scope)


def require(caller: CallerContext, operation: Operation) -> Scope:
    decision = decide(caller.role, operation)
    if isinstance(decision, Deny):
        raise Forbidden(decision.reason)
    return decision.scope
