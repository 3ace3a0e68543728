"""Create demo accounts, a course, a class and an enrollment.

Usage:
    python -m reporting_backend.seed_demo_data [password]
"""
import sys

from sqlalchemy.orm import Session

from reporting_backend.database import Base, SessionLocal, engine, seed_default_faculties
from reporting_backend.models import faculty, report  # noqa: F401
from reporting_backend.models.course import Course
from reporting_backend.models.course_class import CourseClass, Enrollment
from reporting_backend.models.user import User

DEMO_PASSWORD = 'password123'
DEMO_USERS = (
    ('student1', 'student1@example.edu', 'student', 'Demo Student'),
    ('lecturer1', 'lecturer1@example.edu', 'lecturer', 'Demo Lecturer'),
    ('prl1', 'prl1@example.edu', 'principal_lecturer', 'Demo Principal Lecturer'),
    ('pl1', 'pl1@example.edu', 'program_leader', 'Demo Program Leader'),
)


def _get_or_create_user(db: Session, username: str, email: str, role: str, full_name: str, password: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        user = User(username=username, email=email, role=role, full_name=full_name)
        user.set_password(password)
        db.add(user)
        db.flush()
    return user


def seed(db: Session, password: str = DEMO_PASSWORD) -> dict[str, User]:
    users = {
        role: _get_or_create_user(db, username, email, role, full_name, password)
        for username, email, role, full_name in DEMO_USERS
    }

    demo_course = db.query(Course).filter(Course.code == 'DIT101').first()
    if demo_course is None:
        demo_course = Course(
            code='DIT101',
            name='Introduction to Information Technology',
            faculty_id=1,
            program_leader_id=users['principal_lecturer'].id,
        )
        db.add(demo_course)
        db.flush()

    demo_class = db.query(CourseClass).filter(CourseClass.name == 'DIT-Y1-A').first()
    if demo_class is None:
        demo_class = CourseClass(
            name='DIT-Y1-A',
            course_id=demo_course.id,
            lecturer_id=users['lecturer'].id,
            total_registered_students=30,
        )
        db.add(demo_class)
        db.flush()

    enrolled = db.query(Enrollment).filter(
        Enrollment.student_id == users['student'].id,
        Enrollment.class_id == demo_class.id,
    ).first()
    if enrolled is None:
        db.add(Enrollment(student_id=users['student'].id, class_id=demo_class.id))

    db.commit()
    return users


def main() -> None:
    password = sys.argv[1] if len(sys.argv) > 1 else DEMO_PASSWORD

    Base.metadata.create_all(bind=engine)
    seed_default_faculties()
    with SessionLocal() as db:
        users = seed(db, password)
        for role, user in users.items():
            print(f'{role:<20} {user.username:<12} {password}')


if __name__ == "__main__":
    main()
