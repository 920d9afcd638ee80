"""Tiny terminal UI helpers (prompt_toolkit-based).

Small, focused prompts used by the CLI, kept apart from the core components
so they can be tested in isolation with a pipe input.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .validators import validate_category


def _session_like(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _best_prefix_match(words: Sequence[str], text: str) -> str | None:
    if not text:
        return None
    lower = text.lower()
    for w in words:
        wl = w.lower()
        if wl == lower:
            return None
        if wl.startswith(lower):
            return w
    return None


class _PrefixSuggest(AutoSuggest):
    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        cand = _best_prefix_match(self._vocab, document.text)
        if cand is None:
            return None
        return Suggestion(cand[len(document.text) :])


class _KnownCategoryValidator(Validator):
    def __init__(self, lower_to_canonical: dict[str, str]) -> None:
        self._known = lower_to_canonical

    def validate(self, document) -> None:
        if document.text.strip().lower() not in self._known:
            raise ValidationError(message="Choose one of the known categories.")


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str = "",
    message: str = "Category (Tab to complete, Enter to accept): ",
    session: PromptSession | None = None,
) -> str:
    """Prompt for one of ``categories`` with completion and inline suggestions.

    Enter accepts a highlighted completion, otherwise completes a unique
    case-insensitive prefix before submitting. The answer is returned in its
    canonical spelling from ``categories``.
    """

    words = list(categories)
    canonical = {w.lower(): w for w in words}
    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=False)

    kb = KeyBindings()

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cand = _best_prefix_match(words, b.document.text)
        if cand:
            b.insert_text(cand[len(b.document.text) :])
        elif b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("enter", eager=True)
    def _(event) -> None:
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            cand = _best_prefix_match(words, b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    sess = _session_like(session, kb)
    result = sess.prompt(
        message,
        default=default,
        completer=completer,
        auto_suggest=_PrefixSuggest(words),
        validator=_KnownCategoryValidator(canonical),
        validate_while_typing=False,
        key_bindings=kb,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    )
    return canonical.get(result.strip().lower(), result.strip())


def prompt_new_category_name(
    *,
    initial: str = "",
    session: PromptSession | None = None,
    message: str = "New category name (Enter to save • Esc or Ctrl+C to cancel): ",
) -> str | None:
    """Collect a new category name with inline validation.

    Returns the trimmed name, or ``None`` when canceled via Esc or Ctrl+C.
    """

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("c-c", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    class _V(Validator):
        def validate(self, document) -> None:
            v = validate_category(document.text)
            if not v.valid:
                raise ValidationError(message=v.error or "Invalid category name")

    sess = _session_like(session, kb)
    value = sess.prompt(
        message,
        default=initial,
        validator=_V(),
        validate_while_typing=False,
        key_bindings=kb,
    )
    return None if value is None else value.strip()


__all__ = ["select_category", "prompt_new_category_name"]
