"""
RollCall – First-person pronoun substitution.

"how many times was I absent" asked by Maria becomes
"how many times was Maria absent" before any prompt is built, so the model
never has to guess who "I" is.
"""

import re
from typing import Optional

from models import CallerIdentity

# longest alternatives first so "i'm" isn't consumed as "i"
_FIRST_PERSON = re.compile(r"\b(i have|i'm|i've|my|me|i)\b", re.IGNORECASE)


def substitute_pronouns(text: str, caller: Optional[CallerIdentity]) -> str:
    if not caller or not caller.name:
        return text
    return _FIRST_PERSON.sub(lambda _m: caller.name, text)
