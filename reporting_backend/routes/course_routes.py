import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reporting_backend.auth.dependencies import get_caller
from reporting_backend.auth.sessions import CallerContext
from reporting_backend.core.errors import InternalError, ValidationError
from reporting_backend.database import as_dict, get_db
from reporting_backend.models.course import Course
from reporting_backend.models.course_class import CourseClass
from reporting_backend.models.faculty import Faculty
from reporting_backend.models.user import User
from reporting_backend.policy.rules import Operation, require
from reporting_backend.policy.scopes import class_clause, course_clause

router = APIRouter(tags=['courses'])

logger = logging.getLogger(__name__)


class FacultyResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CreateCourseRequest(BaseModel):
    code: str
    name: str
    faculty_id: int

    @field_validator('code')
    @classmethod
    def validate_code(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError('Course code is required.')
        return normalized

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Course name is required.')
        return normalized


class CourseResponse(BaseModel):
    id: int
    code: str
    name: str
    faculty_id: int
    program_leader_id: int | None = None
    faculty_name: str
    program_leader_name: str | None = None
    created_at: datetime | None = None


class CreateCourseResponse(BaseModel):
    message: str
    course_id: int


class ClassResponse(BaseModel):
    id: int
    name: str
    course_id: int
    lecturer_id: int
    total_registered_students: int | None = 0
    course_name: str
    course_code: str
    faculty_name: str
    created_at: datetime | None = None


@router.get('/faculties', response_model=list[FacultyResponse])
def list_faculties(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    require(caller, Operation.LIST_FACULTIES)

    try:
        return db.query(Faculty).order_by(Faculty.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Listing faculties failed')
        raise InternalError('Failed to fetch faculties') from exc


@router.get('/courses', response_model=list[CourseResponse])
def list_courses(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.LIST_COURSES)

    try:
        rows = (
            db.query(Course, Faculty.name, User.full_name)
            .join(Faculty, Course.faculty_id == Faculty.id)
            .outerjoin(User, Course.program_leader_id == User.id)
            .filter(course_clause(scope, caller.id))
            .order_by(Course.code.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Listing courses failed for user %s', caller.id)
        raise InternalError('Failed to fetch courses') from exc

    return [
        as_dict(course, faculty_name=faculty_name, program_leader_name=leader_name)
        for course, faculty_name, leader_name in rows
    ]


@router.post('/courses', response_model=CreateCourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CreateCourseRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    require(caller, Operation.CREATE_COURSE)

    try:
        if db.get(Faculty, payload.faculty_id) is None:
            raise ValidationError('Unknown faculty.')

        if db.query(Course.id).filter(Course.code == payload.code).first():
            raise ValidationError('Course code already exists.')

        course = Course(
            code=payload.code,
            name=payload.name,
            faculty_id=payload.faculty_id,
            program_leader_id=caller.id,
        )
        db.add(course)
        db.commit()
        db.refresh(course)
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError('Course code already exists.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Creating course %s failed', payload.code)
        raise InternalError('Failed to create course') from exc

    logger.info('Course %s created by program leader %s', course.code, caller.id)
    return CreateCourseResponse(message='Course created successfully', course_id=course.id)


@router.get('/classes', response_model=list[ClassResponse])
def list_classes(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.LIST_CLASSES)

    try:
        rows = (
            db.query(CourseClass, Course.name, Course.code, Faculty.name)
            .join(Course, CourseClass.course_id == Course.id)
            .join(Faculty, Course.faculty_id == Faculty.id)
            .filter(class_clause(scope, caller.id))
            .order_by(CourseClass.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Listing classes failed for user %s', caller.id)
        raise InternalError('Failed to fetch classes') from exc

    return [
        as_dict(course_class, course_name=course_name, course_code=course_code, faculty_name=faculty_name)
        for course_class, course_name, course_code, faculty_name in rows
    ]
