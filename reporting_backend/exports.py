"""Spreadsheet export of lecture reports."""

from io import BytesIO

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

REPORT_COLUMNS = (
    ('Faculty', 'faculty_name', 20),
    ('Class', 'class_name', 15),
    ('Week', 'week_of_reporting', 10),
    ('Date', 'date_of_lecture', 12),
    ('Course', 'course_name', 20),
    ('Code', 'course_code', 15),
    ('Lecturer', 'lecturer_name', 20),
    ('Students Present', 'actual_students_present', 15),
    ('Total Students', 'total_registered_students', 15),
    ('Venue', 'venue', 15),
    ('Time', 'scheduled_time', 12),
    ('Topic', 'topic_taught', 25),
)


def build_reports_workbook(reports: list[dict]) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = 'Reports'

    worksheet.append([header for header, _, _ in REPORT_COLUMNS])
    for index, (_, _, width) in enumerate(REPORT_COLUMNS, start=1):
        worksheet.column_dimensions[get_column_letter(index)].width = width

    for report in reports:
        worksheet.append([report.get(key) for _, key, _ in REPORT_COLUMNS])

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
