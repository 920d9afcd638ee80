import contextlib

from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from finance_tracker.models import DEFAULT_CATEGORIES
from finance_tracker.term_ui import prompt_new_category_name, select_category

CATEGORIES = [*DEFAULT_CATEGORIES, "Self-Care"]


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_select_category_accepts_default_with_enter():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_category(CATEGORIES, default="Food", session=sess) == "Food"


def test_select_category_typed_value():
    with pipe_session() as (pipe, sess):
        # Ctrl-A (home), Ctrl-K (kill to end), type full target, Enter
        pipe.send_text("\x01\x0bTransport\r")
        assert select_category(CATEGORIES, default="Food", session=sess) == "Transport"


def test_select_category_enter_completes_prefix():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bBoo\r")
        assert select_category(CATEGORIES, default="Food", session=sess) == "Books"


def test_select_category_returns_canonical_spelling():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bself-care\r")
        assert select_category(CATEGORIES, default="Food", session=sess) == "Self-Care"


def test_select_category_rejects_unknown_until_corrected():
    with pipe_session() as (pipe, sess):
        # "Gym" fails validation; clear it and type a known category.
        pipe.send_text("\x01\x0bGym\r\x01\x0bFees\r")
        assert select_category(CATEGORIES, default="Food", session=sess) == "Fees"


def test_prompt_new_category_name_trims():
    with pipe_session() as (pipe, sess):
        pipe.send_text("  Pets  \r")
        assert prompt_new_category_name(session=sess) == "Pets"


def test_prompt_new_category_name_rejects_invalid_then_accepts():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Pets2\r\x01\x0bPets\r")
        assert prompt_new_category_name(session=sess) == "Pets"
