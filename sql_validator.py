"""
RollCall – SQL safety / validation layer for model-written queries.

Responsibilities, in order:
  1. Strip Markdown code-fence wrapping the LLM sometimes adds.
  2. Require the statement to start with SELECT.
  3. Reject any statement containing a mutating / DDL keyword anywhere.
  4. Append a row cap when no LIMIT is present.

Step 3 is a plain case-insensitive substring scan. It over-rejects (a string
literal or a column like "created_at" trips it) and that is accepted: only
statements that pass are ever executed. Swap this module for a parsed-AST
allow-list if stricter guarantees are needed.
"""

import re

from models import SynthesizedSQL

DENYLIST = (
    "INSERT", "UPDATE", "DELETE", "DROP", "ALTER",
    "CREATE", "TRUNCATE", "GRANT", "REVOKE",
)

ROW_CAP = 200

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")
_STARTS_WITH_SELECT = re.compile(r"^SELECT\b", re.IGNORECASE)
_HAS_LIMIT = re.compile(r"\bLIMIT\b", re.IGNORECASE)


def strip_code_fences(raw_sql: str) -> str:
    """Remove a wrapping ```sql ... ``` block, if any."""
    sql = raw_sql.strip()
    sql = _FENCE_OPEN.sub("", sql)
    sql = _FENCE_CLOSE.sub("", sql)
    return sql.strip()


def find_denied_keyword(sql: str):
    """First denylisted keyword found in *sql*, or None."""
    upper = sql.upper()
    for keyword in DENYLIST:
        if keyword in upper:
            return keyword
    return None


def apply_row_cap(sql: str, cap: int = ROW_CAP) -> tuple[str, bool]:
    """Append ``LIMIT cap`` unless a limit clause is already there."""
    if _HAS_LIMIT.search(sql):
        return sql, False
    return f"{sql.rstrip(';').rstrip()} LIMIT {cap}", True


def validate_sql(raw_sql: str, cap: int = ROW_CAP) -> SynthesizedSQL:
    """
    Validate and sanitise *raw_sql*.

    Returns
    -------
    SynthesizedSQL – the execution-ready statement.

    Raises
    ------
    ValueError – if the statement fails any safety check.
    """
    if not raw_sql or not raw_sql.strip():
        raise ValueError("Empty SQL query received.")

    sql = strip_code_fences(raw_sql)

    # ---- strip trailing semicolons (asyncpg does not like them) ----
    sql = sql.rstrip(";").strip()

    if not _STARTS_WITH_SELECT.match(sql):
        raise ValueError("Query must be a single SELECT statement.")

    keyword = find_denied_keyword(sql)
    if keyword:
        raise ValueError(f"Query contains a blocked keyword: {keyword}.")

    # a second statement hiding behind a semicolon
    if ";" in sql:
        raise ValueError("Only one statement may be executed.")

    sql, capped = apply_row_cap(sql, cap)
    return SynthesizedSQL(statement=sql, row_cap=cap if capped else None)
