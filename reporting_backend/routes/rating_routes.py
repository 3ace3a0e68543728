"""Student ratings and principal-lecturer feedback on lecture reports."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictInt, field_validator
from sqlalchemy import Integer, Text, insert, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reporting_backend.auth.dependencies import get_caller
from reporting_backend.auth.sessions import CallerContext
from reporting_backend.core.errors import Forbidden, InternalError, NotFound
from reporting_backend.database import get_db
from reporting_backend.models.report import Feedback, Rating, Report
from reporting_backend.models.user import User
from reporting_backend.policy.rules import Operation, Scope, require
from reporting_backend.policy.scopes import report_clause

router = APIRouter(tags=['ratings'])

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 1000

RATING_CREATED = 'created'
RATING_UPDATED = 'updated'


class SubmitRatingRequest(BaseModel):
    report_id: StrictInt
    rating_value: StrictInt
    comment: str | None = None

    @field_validator('rating_value')
    @classmethod
    def validate_rating_value(cls, value: int) -> int:
        if not MIN_RATING <= value <= MAX_RATING:
            raise ValueError(f'Rating must be between {MIN_RATING} and {MAX_RATING}')
        return value

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) > MAX_COMMENT_LENGTH:
            raise ValueError(f'Comment must be {MAX_COMMENT_LENGTH} characters or fewer.')
        return normalized or None


class SubmitFeedbackRequest(BaseModel):
    report_id: StrictInt
    feedback_text: str

    @field_validator('feedback_text')
    @classmethod
    def validate_feedback_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Feedback text is required.')
        return normalized


class RatingResponse(BaseModel):
    rating_value: int
    comment: str | None = None
    created_at: datetime | None = None
    student_name: str


class FeedbackResponse(BaseModel):
    id: int
    report_id: int
    principal_lecturer_id: int
    feedback_text: str
    created_at: datetime | None = None
    principal_lecturer_name: str


class MessageResponse(BaseModel):
    message: str


def upsert_rating(db: Session, scope: Scope, student_id: int, payload: SubmitRatingRequest) -> str | None:
    """Write the student's rating if the report falls inside scope.

    Each statement carries the scope predicate itself, so the enrollment
    check and the write cannot be separated by a concurrent change. Returns
    None when the report is outside scope and nothing was written.
    """
    ratings = Rating.__table__
    rateable = select(Report.id).where(Report.id == payload.report_id, report_clause(scope, student_id))

    update_existing = (
        update(ratings)
        .where(
            ratings.c.report_id == payload.report_id,
            ratings.c.student_id == student_id,
            ratings.c.report_id.in_(rateable),
        )
        .values(rating_value=payload.rating_value, comment=payload.comment)
    )
    insert_new = insert(ratings).from_select(
        ['report_id', 'student_id', 'rating_value', 'comment'],
        select(
            Report.id,
            literal(student_id, Integer),
            literal(payload.rating_value, Integer),
            literal(payload.comment, Text),
        ).where(Report.id == payload.report_id, report_clause(scope, student_id)),
    )

    if db.execute(update_existing).rowcount:
        db.commit()
        return RATING_UPDATED

    try:
        inserted = db.execute(insert_new).rowcount
    except IntegrityError:
        # Another request inserted the same (report, student) pair first.
        db.rollback()
        if db.execute(update_existing).rowcount:
            db.commit()
            return RATING_UPDATED
        db.rollback()
        return None

    if not inserted:
        db.rollback()
        return None
    db.commit()
    return RATING_CREATED


def visible_report_or_404(db: Session, scope: Scope, caller_id: int, report_id: int) -> None:
    visible = (
        db.query(Report.id)
        .filter(Report.id == report_id, report_clause(scope, caller_id))
        .first()
    )
    if visible is None:
        raise NotFound('Report not found.')


@router.post('/ratings', response_model=MessageResponse)
def submit_rating(
    payload: SubmitRatingRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    scope = require(caller, Operation.SUBMIT_RATING)

    try:
        if db.get(Report, payload.report_id) is None:
            raise NotFound('Report not found.')
        outcome = upsert_rating(db, scope, caller.id, payload)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Rating report %s failed for student %s', payload.report_id, caller.id)
        raise InternalError('Failed to submit rating') from exc

    if outcome is None:
        raise Forbidden('You can only rate reports for classes you are enrolled in')

    if outcome == RATING_UPDATED:
        return JSONResponse(status_code=status.HTTP_200_OK, content={'message': 'Rating updated successfully'})
    return JSONResponse(status_code=status.HTTP_201_CREATED, content={'message': 'Rating submitted successfully'})


@router.get('/ratings/{report_id}', response_model=list[RatingResponse])
def list_ratings(report_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.VIEW_REPORT_DETAIL)

    try:
        visible_report_or_404(db, scope, caller.id, report_id)
        rows = (
            db.query(Rating, User.full_name)
            .join(User, Rating.student_id == User.id)
            .filter(Rating.report_id == report_id)
            .order_by(Rating.created_at.asc(), Rating.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Listing ratings for report %s failed', report_id)
        raise InternalError('Failed to fetch ratings') from exc

    return [
        RatingResponse(
            rating_value=rating.rating_value,
            comment=rating.comment,
            created_at=rating.created_at,
            student_name=student_name,
        )
        for rating, student_name in rows
    ]


@router.post('/feedback', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    payload: SubmitFeedbackRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
):
    require(caller, Operation.SUBMIT_FEEDBACK)

    try:
        if db.get(Report, payload.report_id) is None:
            raise NotFound('Report not found.')

        db.add(
            Feedback(
                report_id=payload.report_id,
                principal_lecturer_id=caller.id,
                feedback_text=payload.feedback_text,
            )
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Feedback on report %s failed for user %s', payload.report_id, caller.id)
        raise InternalError('Failed to submit feedback') from exc

    return MessageResponse(message='Feedback submitted successfully')


@router.get('/feedback/{report_id}', response_model=list[FeedbackResponse])
def list_feedback(report_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    scope = require(caller, Operation.VIEW_REPORT_DETAIL)

    try:
        visible_report_or_404(db, scope, caller.id, report_id)
        rows = (
            db.query(Feedback, User.full_name)
            .join(User, Feedback.principal_lecturer_id == User.id)
            .filter(Feedback.report_id == report_id)
            .order_by(Feedback.created_at.asc(), Feedback.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception('Listing feedback for report %s failed', report_id)
        raise InternalError('Failed to fetch feedback') from exc

    return [
        FeedbackResponse(
            id=feedback.id,
            report_id=feedback.report_id,
            principal_lecturer_id=feedback.principal_lecturer_id,
            feedback_text=feedback.feedback_text,
            created_at=feedback.created_at,
            principal_lecturer_name=principal_name,
        )
        for feedback, principal_name in rows
    ]
