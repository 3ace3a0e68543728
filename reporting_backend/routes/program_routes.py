"""Principal-lecturer and program-leader course management."""

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy import distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reporting_backend.auth.dependencies import get_caller
from reporting_backend.auth.sessions import CallerContext
from reporting_backend.core.errors import InternalError, NotFound, ValidationError
from reporting_backend.database import as_dict, get_db
from reporting_backend.models.course import Course, CourseAssignment
from reporting_backend.models.course_class import CourseClass
from reporting_backend.models.faculty import Faculty
from reporting_backend.models.user import User
from reporting_backend.policy.rules import Operation, Role, require
from reporting_backend.policy.scopes import course_clause
from reporting_backend.routes.course_routes import (
    CourseResponse,
    CreateCourseRequest,
    CreateCourseResponse,
    create_course,
)

router = APIRouter(tags=['program'])

logger = logging.getLogger(__name__)


class CourseOverviewResponse(CourseResponse):
    class_count: int
    lecturer_count: int


class AssignLecturerRequest(BaseModel):
    course_id: int
    lecturer_id: int


class MessageResponse(BaseModel):
    message: str


class LecturerResponse(BaseModel):
    id: int
    full_name: str
    email: str

    class Config:
        from_attributes = True


def course_overview(db: Session, scope, caller_id: int) -> list[dict]:
    rows = (
        db.query(
            Course,
            Faculty.name,
            User.full_name,
            func.count(distinct(CourseClass.id)),
            func.count(distinct(CourseClass.lecturer_id)),
        )
        .join(Faculty, Course.faculty_id == Faculty.id)
        .outerjoin(User, Course.program_leader_id == User.id)
        .outerjoin(CourseClass, CourseClass.course_id == Course.id)
        .filter(course_clause(scope, caller_id))
        .group_by(Course.id, Faculty.name, User.full_name)
        .order_by(Course.code.asc())
        .all()
    )

    return [
        as_dict(
            course,
            faculty_name=faculty_name,
            program_leader_name=leader_name,
            class_count=class_count,
            lecturer_count=lecturer_count,
        )
        for course, faculty_name, leader_name, class_count, lecturer_count in rows
    ]


@router.get('/principal/courses', response_model=list[CourseOverviewResponse])
def list_principal_courses(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.PRINCIPAL_COURSE_OVERVIEW)

    try:
        return course_overview(db, scope, caller.id)
    except SQLAlchemyError as exc:
        logger.exception('Principal course overview failed for user %s', caller.id)
        raise InternalError('Failed to fetch courses') from exc


@router.get('/program/courses', response_model=list[CourseOverviewResponse])
def list_program_courses(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.PROGRAM_COURSE_OVERVIEW)

    try:
        return course_overview(db, scope, caller.id)
    except SQLAlchemyError as exc:
        logger.exception('Program course overview failed for user %s', caller.id)
        raise InternalError('Failed to fetch courses') from exc


@router.post('/program/courses', response_model=CreateCourseResponse, status_code=status.HTTP_201_CREATED)
def create_program_course(
    payload: CreateCourseRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return create_course(payload, caller=caller, db=db)


@router.post('/program/assign-lecturer', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def assign_lecturer(
    payload: AssignLecturerRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    require(caller, Operation.ASSIGN_LECTURER)

    try:
        if db.get(Course, payload.course_id) is None:
            raise NotFound('Course not found.')

        lecturer = db.get(User, payload.lecturer_id)
        if lecturer is None:
            raise NotFound('Lecturer not found.')
        if lecturer.role != Role.LECTURER.value:
            raise ValidationError('Only lecturers can be assigned to courses.')

        db.add(
            CourseAssignment(
                course_id=payload.course_id,
                lecturer_id=payload.lecturer_id,
                assigned_by=caller.id,
            )
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Assigning lecturer %s to course %s failed', payload.lecturer_id, payload.course_id)
        raise InternalError('Failed to assign lecturer') from exc

    return MessageResponse(message='Lecturer assigned successfully')


@router.get('/program/lecturers', response_model=list[LecturerResponse])
def list_lecturers(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    require(caller, Operation.LIST_LECTURERS)

    try:
        return (
            db.query(User)
            .filter(User.role == Role.LECTURER.value)
            .order_by(User.full_name.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Listing lecturers failed')
        raise InternalError('Failed to fetch lecturers') from exc
