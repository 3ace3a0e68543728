import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from reporting_backend.models.course import Course
from reporting_backend.routes.course_routes import (
    CreateCourseRequest,
    create_course,
    list_classes,
    list_courses,
    list_faculties,
)


def test_create_course_request_normalizes_code() -> None:
    request = CreateCourseRequest(code=' dit201 ', name=' Databases ', faculty_id=1)

    assert request.code == 'DIT201'
    assert request.name == 'Databases'


def test_create_course_request_rejects_blank_name() -> None:
    with pytest.raises(ValidationError):
        CreateCourseRequest(code='DIT201', name='  ', faculty_id=1)


def test_list_faculties_returns_seeded_faculties(db, callers) -> None:
    faculties = list_faculties(caller=callers.student_a, db=db)

    assert [faculty.id for faculty in faculties] == [1, 2, 3]


def test_list_courses_is_forbidden_for_students(db, callers) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_courses(caller=callers.student_a, db=db)

    assert exception_info.value.status_code == 403


def test_list_courses_scoped_for_principal_lecturer(db, callers) -> None:
    courses = list_courses(caller=callers.principal, db=db)

    assert [course['code'] for course in courses] == ['ICT101']
    assert courses[0]['faculty_name'] == 'Faculty of Information Communication Technology'
    assert courses[0]['program_leader_name'] == 'Principal Lecturer'


@pytest.mark.parametrize('role_key', ['lecturer_1', 'leader'])
def test_list_courses_returns_all_for_lecturer_and_program_leader(db, callers, role_key: str) -> None:
    courses = list_courses(caller=getattr(callers, role_key), db=db)

    assert [course['code'] for course in courses] == ['BUS201', 'ICT101']


def test_create_course_sets_caller_as_program_leader(db, callers) -> None:
    response = create_course(
        CreateCourseRequest(code='ENG101', name='Engineering Drawing', faculty_id=3),
        caller=callers.leader,
        db=db,
    )

    course = db.get(Course, response.course_id)
    assert response.message == 'Course created successfully'
    assert course.program_leader_id == callers.leader.id


@pytest.mark.parametrize('role_key', ['student_a', 'lecturer_1', 'principal'])
def test_create_course_denied_for_other_roles(db, callers, role_key: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_course(
            CreateCourseRequest(code='ENG101', name='Engineering Drawing', faculty_id=3),
            caller=getattr(callers, role_key),
            db=db,
        )

    assert exception_info.value.status_code == 403
    assert db.query(Course).filter(Course.code == 'ENG101').first() is None


@pytest.mark.parametrize(
    ('code', 'faculty_id', 'detail'),
    [
        ('ICT101', 1, 'Course code already exists.'),
        ('ENG101', 99, 'Unknown faculty.'),
    ],
)
def test_create_course_rejects_conflicts(db, callers, code: str, faculty_id: int, detail: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_course(CreateCourseRequest(code=code, name='Anything', faculty_id=faculty_id), caller=callers.leader, db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == detail


@pytest.mark.parametrize(
    ('role_key', 'expected'),
    [
        ('student_a', ['ICT-A']),
        ('student_b', ['BUS-B']),
        ('lecturer_2', ['BUS-B']),
        ('principal', ['ICT-A', 'BUS-B']),
        ('leader', ['ICT-A', 'BUS-B']),
    ],
)
def test_list_classes_scoped_by_role(db, callers, role_key: str, expected: list[str]) -> None:
    classes = list_classes(caller=getattr(callers, role_key), db=db)

    assert [course_class['name'] for course_class in classes] == expected
    assert all('course_code' in course_class for course_class in classes)


def test_create_course_reports_unique_violation_as_duplicate(db, callers, skip_lookup) -> None:
    skip_lookup(Course.id)

    with pytest.raises(HTTPException) as exception_info:
        create_course(CreateCourseRequest(code='ICT101', name='Again', faculty_id=1), caller=callers.leader, db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Course code already exists.'
    assert db.query(Course).filter(Course.code == 'ICT101').count() == 1
