"""
RollCall – Domain records passed between pipeline stages.

Everything here is transient: built per question, discarded once the answer
has been returned.
"""

from datetime import date
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

CATEGORIES = ("attendance", "classes", "general")
STATUSES = ("absent", "present", "late", "excused")
PERIODS = ("today", "this_week", "this_month", "last_month", "this_year")
DEFAULT_PERIOD = "this_month"

_NULL_TOKENS = {"", "null", "none", "n/a"}


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
class CallerIdentity(BaseModel):
    """Who is asking. Supplied by the invoking layer, never looked up here."""
    name: str
    role: Optional[str] = None     # "student" / "teacher" / anything else
    id: Optional[int] = None       # users.id


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class Question(BaseModel):
    text: str
    caller: Optional[CallerIdentity] = None
    history: list[ConversationTurn] = []


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
class ExtractedIntent(BaseModel):
    """
    Structured reading of a question.

    Defaults are resolved here, once, so downstream code never has to
    re-check for missing keys. The aliases match the keys the extraction
    prompt asks the model to emit.
    """
    category: Literal["attendance", "classes", "general"] = Field(
        validation_alias=AliasChoices("category", "query_category"),
    )
    query_type: str = "general_question"
    subject_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("subject_name", "student_name"),
    )
    class_name: Optional[str] = None
    status_filter: Optional[Literal["absent", "present", "late", "excused"]] = Field(
        default=None,
        validation_alias=AliasChoices("status_filter", "status"),
    )
    time_period: str = Field(
        default=DEFAULT_PERIOD,
        validation_alias=AliasChoices("time_period", "period"),
    )

    @field_validator("category", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("subject_name", "class_name", "status_filter", mode="before")
    @classmethod
    def _nullable_text(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value.lower() in _NULL_TOKENS:
                return None
        return value

    @field_validator("status_filter", mode="before")
    @classmethod
    def _lower_status(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("time_period", mode="before")
    @classmethod
    def _period(cls, value):
        if not isinstance(value, str) or value.strip().lower() in _NULL_TOKENS:
            return DEFAULT_PERIOD
        return value.strip().lower()

    @field_validator("query_type", mode="before")
    @classmethod
    def _query_type(cls, value):
        if value is None:
            return "general_question"
        return value.strip().lower() if isinstance(value, str) else value


class DateRange(BaseModel):
    """Inclusive calendar range."""
    start: date
    end: date
    period: str = DEFAULT_PERIOD

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


# ---------------------------------------------------------------------------
# Query results (tagged by ``type``)
# ---------------------------------------------------------------------------
class CountResult(BaseModel):
    type: Literal["count"] = "count"
    count: int
    status: str = "all"
    student: Optional[str] = None
    period: str = DEFAULT_PERIOD
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class AttendanceEntry(BaseModel):
    date: date
    status: Optional[str] = None     # NULL when the record was never marked


class ListResult(BaseModel):
    type: Literal["list"] = "list"
    records: list[AttendanceEntry] = []
    count: int = 0
    student: Optional[str] = None
    period: str = DEFAULT_PERIOD


class RateResult(BaseModel):
    type: Literal["rate"] = "rate"
    total_records: int
    present_count: int
    attendance_rate: float
    student: Optional[str] = None
    period: str = DEFAULT_PERIOD


class StudentCountResult(BaseModel):
    type: Literal["student_count"] = "student_count"
    student_count: int
    class_name: Optional[str] = None


class ClassesListResult(BaseModel):
    type: Literal["classes_list"] = "classes_list"
    classes: list[dict[str, Any]] = []
    count: int = 0
    role: Optional[str] = None


class ExcuseCountResult(BaseModel):
    type: Literal["excuse_count"] = "excuse_count"
    count: int


class DatabaseQueryResult(BaseModel):
    type: Literal["database_query"] = "database_query"
    results: list[dict[str, Any]] = []
    count: int = 0
    query: str = ""                # the question that produced the rows
    sql: str = ""
    too_large: bool = False


class ErrorResult(BaseModel):
    type: Literal["error"] = "error"
    reason: str
    message: str


QueryResult = Annotated[
    Union[
        CountResult,
        ListResult,
        RateResult,
        StudentCountResult,
        ClassesListResult,
        ExcuseCountResult,
        DatabaseQueryResult,
        ErrorResult,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# SQL synthesis
# ---------------------------------------------------------------------------
class SynthesizedSQL(BaseModel):
    """A single SELECT that already passed the safety gate."""
    statement: str
    row_cap: Optional[int] = None   # set when the cap was appended by us
