"""
RollCall – Static schema description fed to the SQL synthesizer.

This is prompt context only; nothing here introspects the database.
Keep it in sync with database.py whenever columns change. Audit columns such
as created_at / updated_at are left out on purpose: their names contain
CREATE / UPDATE, which the SQL denylist would reject.
"""

from typing import TypedDict


class TableInfo(TypedDict):
    description: str
    columns: list[str]


SchemaDescription = dict[str, TableInfo]


DEFAULT_SCHEMA: SchemaDescription = {
    "students": {
        "description": "Student information",
        "columns": ["id", "user_id", "student_id", "name", "email", "year", "course", "section", "is_active"],
    },
    "teachers": {
        "description": "Teacher information",
        "columns": ["id", "user_id", "teacher_id", "name", "email", "department", "is_active"],
    },
    "classes": {
        "description": "Class/subject information",
        "columns": ["id", "teacher_id", "name", "subject", "section", "schedule", "room"],
    },
    "attendance_records": {
        "description": "Student attendance records (status: absent, present, late, excused)",
        "columns": ["id", "student_id", "class_id", "status", "date", "remarks"],
    },
    "student_class": {
        "description": "Student enrollment in classes",
        "columns": ["id", "student_id", "class_id", "enrolled_at"],
    },
    "excuse_requests": {
        "description": "Absence excuse requests (status: pending, approved, rejected)",
        "columns": ["id", "student_id", "status", "reviewed_by", "reviewed_at"],
    },
}


def render_schema(schema: SchemaDescription) -> str:
    """One line of description plus one line of columns per table."""
    lines = ["Database Schema:"]
    for table, info in schema.items():
        lines.append(f"- {table}: {info['description']}")
        lines.append(f"  Columns: {', '.join(info['columns'])}")
    return "\n".join(lines)
