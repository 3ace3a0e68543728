import json

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from reporting_backend.models.report import Feedback, Rating
from reporting_backend.policy.rules import Scope
from reporting_backend.routes.rating_routes import (
    RATING_CREATED,
    RATING_UPDATED,
    SubmitFeedbackRequest,
    SubmitRatingRequest,
    list_feedback,
    list_ratings,
    submit_feedback,
    submit_rating,
    upsert_rating,
)


def _body(response) -> dict:
    return json.loads(response.body)


@pytest.mark.parametrize('value', [0, 6, -1])
def test_rating_value_outside_range_is_rejected(value: int) -> None:
    with pytest.raises(ValidationError) as exception_info:
        SubmitRatingRequest(report_id=1, rating_value=value)

    assert 'Rating must be between 1 and 5' in str(exception_info.value)


def test_first_rating_creates_and_resubmission_updates(db, world, callers) -> None:
    first = submit_rating(
        SubmitRatingRequest(report_id=world.ict_report.id, rating_value=3, comment='ok'),
        caller=callers.student_a,
        db=db,
    )
    second = submit_rating(
        SubmitRatingRequest(report_id=world.ict_report.id, rating_value=5, comment='  better  '),
        caller=callers.student_a,
        db=db,
    )

    ratings = db.query(Rating).filter(Rating.report_id == world.ict_report.id).all()
    assert first.status_code == 201
    assert _body(first) == {'message': 'Rating submitted successfully'}
    assert second.status_code == 200
    assert _body(second) == {'message': 'Rating updated successfully'}
    assert len(ratings) == 1
    assert ratings[0].rating_value == 5
    assert ratings[0].comment == 'better'


def test_rating_outside_enrolled_classes_is_forbidden_and_not_written(db, world, callers) -> None:
    with pytest.raises(HTTPException) as exception_info:
        submit_rating(
            SubmitRatingRequest(report_id=world.business_report.id, rating_value=4),
            caller=callers.student_a,
            db=db,
        )

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'You can only rate reports for classes you are enrolled in'
    assert db.query(Rating).count() == 0


@pytest.mark.parametrize('role_key', ['lecturer_1', 'principal', 'leader'])
def test_only_students_can_rate(db, world, callers, role_key: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        submit_rating(
            SubmitRatingRequest(report_id=world.ict_report.id, rating_value=4),
            caller=getattr(callers, role_key),
            db=db,
        )

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Only students can rate reports.'


def test_rating_unknown_report_is_not_found(db, callers) -> None:
    with pytest.raises(HTTPException) as exception_info:
        submit_rating(SubmitRatingRequest(report_id=9999, rating_value=4), caller=callers.student_a, db=db)

    assert exception_info.value.status_code == 404


def test_upsert_rating_reports_outcome(db, world) -> None:
    payload = SubmitRatingRequest(report_id=world.business_report.id, rating_value=2)

    assert upsert_rating(db, Scope.ENROLLED_CLASS_REPORTS, world.student_b.id, payload) == RATING_CREATED
    assert upsert_rating(db, Scope.ENROLLED_CLASS_REPORTS, world.student_b.id, payload) == RATING_UPDATED
    assert upsert_rating(db, Scope.ENROLLED_CLASS_REPORTS, world.student_a.id, payload) is None


def test_rating_over_http_maps_range_error_to_bad_request(client, world, auth_headers) -> None:
    response = client.post(
        '/api/ratings',
        json={'report_id': world.ict_report.id, 'rating_value': 6},
        headers=auth_headers('student_a'),
    )

    assert response.status_code == 400
    assert response.json() == {'detail': 'Rating must be between 1 and 5'}


@pytest.mark.parametrize('value', [True, '4', 4.0])
def test_rating_value_must_be_a_json_integer(client, db, world, auth_headers, value) -> None:
    response = client.post(
        '/api/ratings',
        json={'report_id': world.ict_report.id, 'rating_value': value},
        headers=auth_headers('student_a'),
    )

    assert response.status_code == 400
    assert db.query(Rating).count() == 0


def test_rating_report_id_must_be_a_json_integer(client, db, world, auth_headers) -> None:
    response = client.post(
        '/api/ratings',
        json={'report_id': str(world.ict_report.id), 'rating_value': 4},
        headers=auth_headers('student_a'),
    )

    assert response.status_code == 400
    assert db.query(Rating).count() == 0


def test_feedback_can_be_submitted_repeatedly(db, world, callers) -> None:
    for text in ('Good pacing.', 'Add more examples.'):
        response = submit_feedback(
            SubmitFeedbackRequest(report_id=world.business_report.id, feedback_text=text),
            caller=callers.principal,
            db=db,
        )
        assert response.message == 'Feedback submitted successfully'

    assert db.query(Feedback).filter(Feedback.report_id == world.business_report.id).count() == 2


@pytest.mark.parametrize('role_key', ['student_a', 'lecturer_1', 'leader'])
def test_feedback_only_from_principal_lecturers(db, world, callers, role_key: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        submit_feedback(
            SubmitFeedbackRequest(report_id=world.ict_report.id, feedback_text='Nice.'),
            caller=getattr(callers, role_key),
            db=db,
        )

    assert exception_info.value.status_code == 403
    assert db.query(Feedback).count() == 0


def test_feedback_on_unknown_report_is_not_found(db, callers) -> None:
    with pytest.raises(HTTPException) as exception_info:
        submit_feedback(
            SubmitFeedbackRequest(report_id=9999, feedback_text='Nice.'),
            caller=callers.principal,
            db=db,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Report not found.'


def test_report_detail_lists_ratings_and_feedback(db, world, callers) -> None:
    db.add_all([
        Rating(report_id=world.ict_report.id, student_id=world.student_a.id, rating_value=4, comment='clear'),
        Feedback(report_id=world.ict_report.id, principal_lecturer_id=world.principal.id, feedback_text='Solid.'),
    ])
    db.commit()

    ratings = list_ratings(world.ict_report.id, caller=callers.lecturer_1, db=db)
    feedback = list_feedback(world.ict_report.id, caller=callers.principal, db=db)

    assert [(rating.rating_value, rating.student_name) for rating in ratings] == [(4, 'Student Alpha')]
    assert [(item.feedback_text, item.principal_lecturer_name) for item in feedback] == [
        ('Solid.', 'Principal Lecturer')
    ]


def test_report_detail_hidden_outside_scope(db, world, callers) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_ratings(world.ict_report.id, caller=callers.lecturer_2, db=db)

    assert exception_info.value.status_code == 404
