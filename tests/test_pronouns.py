from models import CallerIdentity
from pronouns import substitute_pronouns

MARIA = CallerIdentity(name="Maria", role="student", id=5)


def test_subject_pronoun():
    assert substitute_pronouns("was I absent today?", MARIA) == "was Maria absent today?"


def test_possessive_and_object():
    assert substitute_pronouns("show my classes and tell me the rate", MARIA) == \
        "show Maria classes and tell Maria the rate"


def test_contractions_replaced_whole():
    assert substitute_pronouns("I'm late? I've been absent", MARIA) == "Maria late? Maria been absent"


def test_words_containing_pronouns_untouched():
    text = "list my classes in Mathematics this semester"
    assert substitute_pronouns(text, MARIA) == "list Maria classes in Mathematics this semester"


def test_case_insensitive():
    assert substitute_pronouns("MY attendance", MARIA) == "Maria attendance"


def test_no_caller_leaves_text_alone():
    assert substitute_pronouns("was I absent?", None) == "was I absent?"
