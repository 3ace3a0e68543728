"""SQL predicates for each policy scope.

Each function turns a Scope and the caller's id into a WHERE clause for one
entity. Asking for a scope that does not apply to the entity is a
programming error and raises ValueError.
"""

from sqlalchemy import select, true
from sqlalchemy.sql.elements import ColumnElement

from reporting_backend.models.course import Course
from reporting_backend.models.course_class import CourseClass, Enrollment
from reporting_backend.models.faculty import Faculty
from reporting_backend.models.report import Report
from reporting_backend.policy.rules import Scope


def enrolled_class_ids(student_id: int):
    return select(Enrollment.class_id).where(Enrollment.student_id == student_id)


def led_faculty_names(leader_id: int):
    return (
        select(Faculty.name)
        .join(Course, Course.faculty_id == Faculty.id)
        .where(Course.program_leader_id == leader_id)
    )


def led_course_class_ids(leader_id: int):
    return (
        select(CourseClass.id)
        .join(Course, Course.id == CourseClass.course_id)
        .where(Course.program_leader_id == leader_id)
    )


def course_clause(scope: Scope, caller_id: int) -> ColumnElement:
    if scope is Scope.ALL:
        return true()
    if scope is Scope.LED_COURSES:
        return Course.program_leader_id == caller_id
    raise ValueError(f'Scope {scope.value} does not apply to courses')


def class_clause(scope: Scope, caller_id: int) -> ColumnElement:
    if scope is Scope.ALL:
        return true()
    if scope is Scope.TAUGHT_CLASSES:
        return CourseClass.lecturer_id == caller_id
    if scope is Scope.ENROLLED_CLASSES:
        return CourseClass.id.in_(enrolled_class_ids(caller_id))
    raise ValueError(f'Scope {scope.value} does not apply to classes')


def report_clause(scope: Scope, caller_id: int) -> ColumnElement:
    if scope is Scope.ALL:
        return true()
    if scope is Scope.AUTHORED_REPORTS:
        return Report.created_by == caller_id
    if scope is Scope.ENROLLED_CLASS_REPORTS:
        return Report.class_id.in_(enrolled_class_ids(caller_id))
    if scope is Scope.LED_FACULTY_REPORTS:
        # Matches on the faculty name captured in the report.
        return Report.faculty_name.in_(led_faculty_names(caller_id))
    if scope is Scope.LED_COURSE_REPORTS:
        return Report.class_id.in_(led_course_class_ids(caller_id))
    raise ValueError(f'Scope {scope.value} does not apply to reports')
