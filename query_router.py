"""
RollCall – Dispatch an extracted intent to the query that answers it.

    attendance / count_*         → filtered count
    attendance / list_dates      → 20 most recent (date, status) pairs
    attendance / attendance_rate → present / total over the range
    classes    / count_students_in_class
    classes    / list_classes    → role-scoped class listing
    general                      → SQLSynthesizer

Known categories with an unknown query_type get an explicit error result.
Database failures are caught here and returned as error results.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from database import (
    AttendanceRecord, ClassModel, ExcuseRequest, QueryExecutor, Student,
    StudentClass, Teacher,
)
from exceptions import QueryExecutionError
from models import (
    AttendanceEntry, CallerIdentity, ClassesListResult, CountResult, DateRange,
    ErrorResult, ExcuseCountResult, ExtractedIntent, ListResult, RateResult,
    StudentCountResult,
)
from sql_synthesizer import SQLSynthesizer
from time_window import Clock, resolve

logger = logging.getLogger(__name__)

LIST_LIMIT = 20

COUNT_QUERY_TYPES = ("count_absences", "count_present", "count_late")

# status implied by a count query type when the model left status empty
_IMPLIED_STATUS = {
    "count_absences": "absent",
    "count_present": "present",
    "count_late": "late",
}


def attendance_rate(present: int, total: int) -> float:
    """Percentage rounded to 2 places; an empty range is 0, never a division error."""
    if total <= 0:
        return 0.0
    return round(present / total * 100, 2)


def _attendance_conditions(
    subject_name: Optional[str], status: Optional[str], date_range: DateRange
) -> list:
    conditions = [
        AttendanceRecord.date >= date_range.start,
        AttendanceRecord.date <= date_range.end,
    ]
    if subject_name:
        conditions.append(Student.name.ilike(f"%{subject_name}%"))
    if status:
        conditions.append(AttendanceRecord.status == status)
    return conditions


def _count_attendance(conditions: list):
    return (
        select(func.count(AttendanceRecord.id))
        .select_from(AttendanceRecord)
        .join(Student, AttendanceRecord.student_id == Student.id)
        .where(*conditions)
    )


def _unsupported(intent: ExtractedIntent) -> ErrorResult:
    return ErrorResult(
        reason="unsupported_query_type",
        message=f"Sorry, I can't answer '{intent.query_type}' questions about "
                f"{intent.category} yet.",
    )


class QueryRouter:
    """Routes intents to fixed queries or to the SQL synthesizer"""

    def __init__(
        self,
        executor: QueryExecutor,
        synthesizer: SQLSynthesizer,
        clock: Clock = datetime.now,
    ):
        self.executor = executor
        self.synthesizer = synthesizer
        self.clock = clock

    async def route(
        self,
        intent: ExtractedIntent,
        caller: Optional[CallerIdentity] = None,
        question: str = "",
    ):
        logger.info("Routing %s/%s", intent.category, intent.query_type)
        try:
            if intent.category == "attendance":
                return await self._attendance(intent)
            if intent.category == "classes":
                return await self._classes(intent, caller)
        except QueryExecutionError as exc:
            logger.error("Query for %s/%s failed: %s", intent.category, intent.query_type, exc)
            return ErrorResult(
                reason="execution_failed",
                message="I had trouble looking that up. Please try again later.",
            )
        return await self.synthesizer.answer(question, caller)

    # ------------------------------------------------------------------
    # attendance
    # ------------------------------------------------------------------
    async def _attendance(self, intent: ExtractedIntent):
        date_range = resolve(intent.time_period, self.clock())
        subject = intent.subject_name
        query_type = intent.query_type

        if query_type in COUNT_QUERY_TYPES:
            status = intent.status_filter or _IMPLIED_STATUS[query_type]
            conditions = _attendance_conditions(subject, status, date_range)
            count = await self.executor.scalar(_count_attendance(conditions)) or 0
            return CountResult(
                count=count,
                status=status,
                student=subject,
                period=date_range.period,
                start_date=date_range.start,
                end_date=date_range.end,
            )

        if query_type == "list_dates":
            conditions = _attendance_conditions(subject, intent.status_filter, date_range)
            stmt = (
                select(AttendanceRecord.date, AttendanceRecord.status)
                .select_from(AttendanceRecord)
                .join(Student, AttendanceRecord.student_id == Student.id)
                .where(*conditions)
                .order_by(AttendanceRecord.date.desc(), AttendanceRecord.id.desc())
                .limit(LIST_LIMIT)
            )
            rows = await self.executor.fetch_all(stmt)
            records = [AttendanceEntry(date=row["date"], status=row["status"]) for row in rows]
            return ListResult(
                records=records,
                count=len(records),
                student=subject,
                period=date_range.period,
            )

        if query_type == "attendance_rate":
            total = await self.executor.scalar(
                _count_attendance(_attendance_conditions(subject, None, date_range))
            ) or 0
            present = await self.executor.scalar(
                _count_attendance(_attendance_conditions(subject, "present", date_range))
            ) or 0
            return RateResult(
                total_records=total,
                present_count=present,
                attendance_rate=attendance_rate(present, total),
                student=subject,
                period=date_range.period,
            )

        return _unsupported(intent)

    # ------------------------------------------------------------------
    # classes
    # ------------------------------------------------------------------
    async def _classes(self, intent: ExtractedIntent, caller: Optional[CallerIdentity]):
        if intent.query_type == "count_students_in_class":
            if not intent.class_name:
                return ErrorResult(
                    reason="missing_class_name",
                    message="Which class do you mean? Please include the class name.",
                )
            return await self.count_students_in_class(intent.class_name)

        if intent.query_type == "list_classes":
            return await self.list_classes(caller)

        return _unsupported(intent)

    async def count_students_in_class(self, class_name: str) -> StudentCountResult:
        class_id = await self.executor.scalar(
            select(ClassModel.id)
            .where(ClassModel.name.ilike(f"%{class_name}%"))
            .order_by(ClassModel.id)
            .limit(1)
        )
        if class_id is None:
            return StudentCountResult(student_count=0, class_name=class_name)

        count = await self.executor.scalar(
            select(func.count(StudentClass.id)).where(StudentClass.class_id == class_id)
        ) or 0
        return StudentCountResult(student_count=count, class_name=class_name)

    async def list_classes(self, caller: Optional[CallerIdentity]):
        """Classes the caller takes or teaches; needs a linked user id."""
        # user_id == NULL would match every unlinked account
        if caller is None or caller.id is None:
            return ErrorResult(
                reason="not_authenticated",
                message="You need to be logged in to view your classes.",
            )
        role = (caller.role or "").lower()

        if role == "student":
            stmt = (
                select(
                    ClassModel.name.label("class_name"),
                    ClassModel.subject,
                    ClassModel.schedule,
                    Teacher.name.label("teacher_name"),
                )
                .select_from(StudentClass)
                .join(Student, StudentClass.student_id == Student.id)
                .join(ClassModel, StudentClass.class_id == ClassModel.id)
                .outerjoin(Teacher, ClassModel.teacher_id == Teacher.id)
                .where(Student.user_id == caller.id)
                .order_by(ClassModel.name)
            )
        elif role == "teacher":
            stmt = (
                select(
                    ClassModel.name.label("class_name"),
                    ClassModel.subject,
                    ClassModel.schedule,
                    ClassModel.section,
                )
                .select_from(ClassModel)
                .join(Teacher, ClassModel.teacher_id == Teacher.id)
                .where(Teacher.user_id == caller.id)
                .order_by(ClassModel.name)
            )
        else:
            return ClassesListResult(classes=[], count=0, role=role or None)

        rows = await self.executor.fetch_all(stmt)
        return ClassesListResult(classes=rows, count=len(rows), role=role)

    # ------------------------------------------------------------------
    # approved excuses
    # ------------------------------------------------------------------
    async def count_approved_excuses(self, caller: Optional[CallerIdentity]):
        """Excuse requests approved by the caller, by user id or teacher id."""
        if caller is None or caller.id is None:
            return ErrorResult(
                reason="not_authenticated",
                message="You need to be logged in to see the excuses you approved.",
            )
        try:
            reviewer_ids = [caller.id]
            teacher_id = await self.executor.scalar(
                select(Teacher.id).where(Teacher.user_id == caller.id).limit(1)
            )
            if teacher_id is not None:
                reviewer_ids.append(teacher_id)

            count = await self.executor.scalar(
                select(func.count(ExcuseRequest.id))
                .where(ExcuseRequest.status == "approved")
                .where(ExcuseRequest.reviewed_by.in_(reviewer_ids))
            ) or 0
        except QueryExecutionError as exc:
            logger.error("Approved-excuse count failed: %s", exc)
            return ErrorResult(
                reason="execution_failed",
                message="I had trouble looking that up. Please try again later.",
            )
        return ExcuseCountResult(count=count)
