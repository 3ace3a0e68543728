import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, field_validator
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reporting_backend.auth.dependencies import get_caller
from reporting_backend.auth.sessions import CallerContext
from reporting_backend.core.errors import InternalError, NotFound, ValidationError
from reporting_backend.database import as_dict, get_db
from reporting_backend.exports import XLSX_MEDIA_TYPE, build_reports_workbook
from reporting_backend.models.course_class import CourseClass
from reporting_backend.models.report import Rating, Report
from reporting_backend.policy.rules import Operation, Scope, require
from reporting_backend.policy.scopes import report_clause

router = APIRouter(tags=['reports'])

logger = logging.getLogger(__name__)

MAX_SEARCH_QUERY_LENGTH = 100
SEARCHABLE_REPORT_COLUMNS = (
    Report.course_name,
    Report.course_code,
    Report.topic_taught,
    Report.lecturer_name,
)

REQUIRED_TEXT_FIELDS = (
    'faculty_name',
    'week_of_reporting',
    'course_name',
    'course_code',
    'lecturer_name',
    'venue',
    'topic_taught',
    'learning_outcomes',
)


class CreateReportRequest(BaseModel):
    class_id: int
    faculty_name: str
    week_of_reporting: str
    date_of_lecture: date
    course_name: str
    course_code: str
    lecturer_name: str
    actual_students_present: int
    total_registered_students: int
    venue: str
    scheduled_time: time
    topic_taught: str
    learning_outcomes: str
    lecturer_recommendations: str | None = None

    @field_validator(*REQUIRED_TEXT_FIELDS)
    @classmethod
    def validate_required_text(cls, value: str, info) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError(f'{info.field_name} is required.')
        return normalized

    @field_validator('actual_students_present', 'total_registered_students')
    @classmethod
    def validate_counts(cls, value: int) -> int:
        if value < 0:
            raise ValueError('Student counts cannot be negative.')
        return value

    @field_validator('lecturer_recommendations')
    @classmethod
    def validate_recommendations(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class ReportResponse(BaseModel):
    id: int
    faculty_name: str
    class_id: int
    class_name: str
    week_of_reporting: str
    date_of_lecture: date
    course_name: str
    course_code: str
    lecturer_name: str
    actual_students_present: int
    total_registered_students: int
    venue: str
    scheduled_time: time
    topic_taught: str
    learning_outcomes: str
    lecturer_recommendations: str | None = None
    created_by: int
    created_at: datetime | None = None


class MonitoringResponse(ReportResponse):
    average_rating: float | None = None
    rating_count: int


class SearchResultResponse(ReportResponse):
    type: str = 'report'


class CreateReportResponse(BaseModel):
    message: str
    report_id: int


def scoped_reports(db: Session, scope: Scope, caller_id: int):
    """Reports visible under scope, newest first, paired with their class name."""
    return (
        db.query(Report, CourseClass.name)
        .join(CourseClass, Report.class_id == CourseClass.id)
        .filter(report_clause(scope, caller_id))
        .order_by(Report.created_at.desc(), Report.id.desc())
    )


def _report_rows(rows) -> list[dict]:
    return [as_dict(report, class_name=class_name) for report, class_name in rows]


@router.get('/reports', response_model=list[ReportResponse])
def list_reports(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.LIST_REPORTS)

    try:
        return _report_rows(scoped_reports(db, scope, caller.id).all())
    except SQLAlchemyError as exc:
        logger.exception('Listing reports failed for user %s', caller.id)
        raise InternalError('Failed to fetch reports') from exc


@router.post('/reports', response_model=CreateReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: CreateReportRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    require(caller, Operation.CREATE_REPORT)

    try:
        if db.get(CourseClass, payload.class_id) is None:
            raise NotFound('Class not found.')

        report = Report(**payload.model_dump(), created_by=caller.id)
        db.add(report)
        db.commit()
        db.refresh(report)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Creating report failed for user %s', caller.id)
        raise InternalError('Failed to create report') from exc

    logger.info('Report %s submitted by lecturer %s', report.id, caller.id)
    return CreateReportResponse(message='Report created successfully', report_id=report.id)


@router.get('/reports/export')
def export_reports(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.EXPORT_REPORTS)

    try:
        reports = _report_rows(scoped_reports(db, scope, caller.id).all())
    except SQLAlchemyError as exc:
        logger.exception('Exporting reports failed for user %s', caller.id)
        raise InternalError('Failed to export reports') from exc

    return Response(
        content=build_reports_workbook(reports),
        media_type=XLSX_MEDIA_TYPE,
        headers={'Content-Disposition': 'attachment; filename=reports.xlsx'},
    )


@router.get('/student/reports', response_model=list[ReportResponse])
def list_student_reports(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.LIST_ENROLLED_REPORTS)

    try:
        return _report_rows(scoped_reports(db, scope, caller.id).all())
    except SQLAlchemyError as exc:
        logger.exception('Listing enrolled reports failed for student %s', caller.id)
        raise InternalError('Failed to fetch reports') from exc


@router.get('/monitoring', response_model=list[MonitoringResponse])
def monitoring(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.MONITORING)

    try:
        rows = (
            db.query(Report, CourseClass.name, func.avg(Rating.rating_value), func.count(Rating.id))
            .join(CourseClass, Report.class_id == CourseClass.id)
            .outerjoin(Rating, Rating.report_id == Report.id)
            .filter(report_clause(scope, caller.id))
            .group_by(Report.id, CourseClass.name)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Monitoring query failed for user %s', caller.id)
        raise InternalError('Failed to fetch monitoring data') from exc

    return [
        as_dict(
            report,
            class_name=class_name,
            average_rating=float(average) if average is not None else None,
            rating_count=rating_count,
        )
        for report, class_name, average, rating_count in rows
    ]


@router.get('/search', response_model=list[SearchResultResponse])
def search(
    q: str = Query(default=''),
    type: str | None = Query(default=None),
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    term = q.strip()
    if not term:
        raise ValidationError('Search query required')
    if len(term) > MAX_SEARCH_QUERY_LENGTH:
        raise ValidationError(f'Search query must be {MAX_SEARCH_QUERY_LENGTH} characters or fewer.')

    scope = require(caller, Operation.SEARCH_REPORTS)

    if type not in (None, '', 'reports'):
        return []

    try:
        rows = (
            scoped_reports(db, scope, caller.id)
            .filter(or_(*(column.icontains(term, autoescape=True) for column in SEARCHABLE_REPORT_COLUMNS)))
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Search failed for user %s', caller.id)
        raise InternalError('Search failed') from exc

    return [dict(row, type='report') for row in _report_rows(rows)]
