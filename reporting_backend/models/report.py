"""Lecture report, rating and feedback model definitions."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from reporting_backend.database import Base


class Report(Base):
    """One lecture session as reported by its lecturer.

    faculty_name, course_name, course_code and lecturer_name are copied in at
    submission time and are not kept in sync with the course or class rows.
    """
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True)
    faculty_name = Column(String(255), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    week_of_reporting = Column(String(50), nullable=False)
    date_of_lecture = Column(Date, nullable=False)
    course_name = Column(String(255), nullable=False)
    course_code = Column(String(50), nullable=False)
    lecturer_name = Column(String(100), nullable=False)
    actual_students_present = Column(Integer, nullable=False)
    total_registered_students = Column(Integer, nullable=False)
    venue = Column(String(100), nullable=False)
    scheduled_time = Column(Time, nullable=False)
    topic_taught = Column(Text, nullable=False)
    learning_outcomes = Column(Text, nullable=False)
    lecturer_recommendations = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Rating(Base):
    """A student's score for a report. One row per (report, student)."""
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("report_id", "student_id", name="unique_rating"),
        CheckConstraint("rating_value >= 1 AND rating_value <= 5", name="rating_value_range"),
    )

    id = Column(Integer, primary_key=True)
    report_id = Column(Integer, ForeignKey("reports.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating_value = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True)
    report_id = Column(Integer, ForeignKey("reports.id"), nullable=False, index=True)
    principal_lecturer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    feedback_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
