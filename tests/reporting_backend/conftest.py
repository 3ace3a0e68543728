import os
from datetime import date, time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from werkzeug.security import generate_password_hash

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SEED_DEFAULT_FACULTIES', 'false')

from reporting_backend.auth.sessions import CallerContext, SessionRegistry  # noqa: E402
from reporting_backend.database import Base, get_db, seed_default_faculties  # noqa: E402
from reporting_backend.main import app  # noqa: E402
from reporting_backend.models.course import Course  # noqa: E402
from reporting_backend.models.course_class import CourseClass, Enrollment  # noqa: E402
from reporting_backend.models.report import Report  # noqa: E402
from reporting_backend.models.user import User  # noqa: E402

ICT_FACULTY = 'Faculty of Information Communication Technology'
BUSINESS_FACULTY = 'Faculty of Business'
TEST_PASSWORD = 'correct-horse'
# Hashed once so fixtures do not pay the key-derivation cost per user.
TEST_PASSWORD_HASH = generate_password_hash(TEST_PASSWORD)


@pytest.fixture
def test_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    seed_default_faculties(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def registry():
    return SessionRegistry()


def _user(db, username: str, role: str, full_name: str) -> User:
    user = User(
        username=username,
        email=f'{username}@example.edu',
        hashed_password=TEST_PASSWORD_HASH,
        role=role,
        full_name=full_name,
    )
    db.add(user)
    db.flush()
    return user


def _report(db, course_class: CourseClass, author: User, faculty_name: str, course: Course, topic: str) -> Report:
    report = Report(
        faculty_name=faculty_name,
        class_id=course_class.id,
        week_of_reporting='Week 3',
        date_of_lecture=date(2026, 2, 10),
        course_name=course.name,
        course_code=course.code,
        lecturer_name=author.full_name,
        actual_students_present=25,
        total_registered_students=30,
        venue='Room 4',
        scheduled_time=time(10, 0),
        topic_taught=topic,
        learning_outcomes='Students can explain the topic.',
        created_by=author.id,
    )
    db.add(report)
    db.flush()
    return report


@pytest.fixture
def world(db):
    """Two faculties, two lecturers, two classes and three reports.

    The principal lecturer leads the ICT course; the program leader leads the
    business course. Student A is enrolled in the ICT class, student B in the
    business class.
    """
    student_a = _user(db, 'student_a', 'student', 'Student Alpha')
    student_b = _user(db, 'student_b', 'student', 'Student Beta')
    lecturer_1 = _user(db, 'lecturer_1', 'lecturer', 'Lecturer One')
    lecturer_2 = _user(db, 'lecturer_2', 'lecturer', 'Lecturer Two')
    principal = _user(db, 'principal', 'principal_lecturer', 'Principal Lecturer')
    leader = _user(db, 'leader', 'program_leader', 'Program Leader')

    ict_course = Course(code='ICT101', name='Intro to ICT', faculty_id=1, program_leader_id=principal.id)
    business_course = Course(code='BUS201', name='Business Basics', faculty_id=2, program_leader_id=leader.id)
    db.add_all([ict_course, business_course])
    db.flush()

    ict_class = CourseClass(name='ICT-A', course_id=ict_course.id, lecturer_id=lecturer_1.id, total_registered_students=30)
    business_class = CourseClass(
        name='BUS-B', course_id=business_course.id, lecturer_id=lecturer_2.id, total_registered_students=40
    )
    db.add_all([ict_class, business_class])
    db.flush()

    db.add_all([
        Enrollment(student_id=student_a.id, class_id=ict_class.id),
        Enrollment(student_id=student_b.id, class_id=business_class.id),
    ])

    ict_report = _report(db, ict_class, lecturer_1, ICT_FACULTY, ict_course, 'Networking fundamentals')
    business_report = _report(db, business_class, lecturer_2, BUSINESS_FACULTY, business_course, 'Market analysis')
    second_business_report = _report(
        db, business_class, lecturer_2, BUSINESS_FACULTY, business_course, 'Accounting basics'
    )
    db.commit()

    return SimpleNamespace(
        student_a=student_a,
        student_b=student_b,
        lecturer_1=lecturer_1,
        lecturer_2=lecturer_2,
        principal=principal,
        leader=leader,
        ict_course=ict_course,
        business_course=business_course,
        ict_class=ict_class,
        business_class=business_class,
        ict_report=ict_report,
        business_report=business_report,
        second_business_report=second_business_report,
    )


@pytest.fixture
def client(session_factory, registry):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    original_registry = app.state.session_registry
    app.state.session_registry = registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.session_registry = original_registry


@pytest.fixture
def callers(world):
    return SimpleNamespace(
        student_a=CallerContext.model_validate(world.student_a),
        student_b=CallerContext.model_validate(world.student_b),
        lecturer_1=CallerContext.model_validate(world.lecturer_1),
        lecturer_2=CallerContext.model_validate(world.lecturer_2),
        principal=CallerContext.model_validate(world.principal),
        leader=CallerContext.model_validate(world.leader),
    )


@pytest.fixture
def auth_headers(callers, registry):
    def _headers(role_key: str, header: str = 'Authorization') -> dict[str, str]:
        return {header: registry.create(getattr(callers, role_key))}

    return _headers


@pytest.fixture
def skip_lookup(db, monkeypatch):
    """Make db.query(column) find nothing, as if a concurrent insert had not landed yet."""
    def _skip(column) -> None:
        real_query = db.query

        class _NoRows:
            def filter(self, *criteria):
                return self

            def first(self):
                return None

        def _query(*entities):
            if len(entities) == 1 and entities[0] is column:
                return _NoRows()
            return real_query(*entities)

        monkeypatch.setattr(db, 'query', _query)

    return _skip
