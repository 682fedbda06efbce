"""
RollCall – Pull a JSON object out of free-form model output.

Models like to wrap the object they were asked for in prose or code fences.
Rather than a greedy ``\\{.*\\}`` regex (which swallows everything between the
first "{" and the last "}"), scan for the first *balanced* object, honouring
string literals and escapes so braces inside strings don't count.
"""

import json
from typing import Optional


def find_first_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` substring of *text*, or None.

    Only the first complete object is returned; anything after it (trailing
    commentary, a second object) is ignored.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            ch = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:idx + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def extract_json_object(text: str) -> Optional[dict]:
    """
    Parse the first balanced object in *text* as JSON.

    Returns None when there is no object, it is not valid JSON, or it does
    not decode to a dict.
    """
    candidate = find_first_object(text)
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
