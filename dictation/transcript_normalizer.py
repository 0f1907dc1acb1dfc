"""
Spoken punctuation normalisation.

Dictated recordings are recognised without automatic punctuation, so the
speaker says the punctuation out loud: "go to the store comma then come back
period".  :func:`normalize_transcript` turns those words into symbols
attached to the preceding word and re‑flows the whitespace::

    >>> normalize_transcript("hello comma how are you question mark")
    'hello, how are you?'

Saying ``literal`` right before a punctuation word keeps the word itself::

    >>> normalize_transcript("say literal comma now")
    'say comma now'

The escape covers one punctuation word or phrase only.  Running the
normaliser on its own output is a no‑op unless an escape fired, because an
escaped word looks exactly like one that was never converted.

Symbols get a space after them, except that ``.``, ``,`` and ``:`` between
two digits are left alone so numbers and times such as ``3.5``, ``1,000``
and ``12:30`` survive the re-spacing.
"""

import re
from typing import List, Optional, Sequence, Tuple

from .transcript_extractor import EMPTY_TRANSCRIPT_PLACEHOLDER

ESCAPE_WORD = "literal"

# Two-word phrases are tried before single words.
PUNCTUATION_PHRASES = {
    ("question", "mark"): "?",
    ("exclamation", "mark"): "!",
    ("exclamation", "point"): "!",
}
PUNCTUATION_WORDS = {
    "period": ".",
    "comma": ",",
    "colon": ":",
    "semicolon": ";",
}

SYMBOLS = ".,:;?!"
_CLOSERS = ")]}\"'”’»"
_NUMERIC_SEPARATORS = ".,:"

_SPACE_BEFORE_SYMBOL_RE = re.compile(r"\s+(?=[%s])" % re.escape(SYMBOLS))
_SYMBOL_BEFORE_TEXT_RE = re.compile(
    r"([%s])(?=[^\s%s%s])" % (re.escape(SYMBOLS), re.escape(SYMBOLS), re.escape(_CLOSERS))
)
_MULTI_SPACE_RE = re.compile(r" {2,}")


def _space_after_symbol(match: "re.Match[str]") -> str:
    symbol = match.group(1)
    text = match.string
    start, end = match.start(), match.end()
    # 3.5, 1,000 and 12:30 stay intact.
    if symbol in _NUMERIC_SEPARATORS and start > 0 and text[start - 1].isdigit() and text[end].isdigit():
        return symbol
    return symbol + " "


def tidy_spacing(text: str) -> str:
    """Attach symbols to the text before them and space the text after them.

    No space is put between consecutive symbols or before a closing bracket
    or quote.
    """
    text = _SPACE_BEFORE_SYMBOL_RE.sub("", text)
    text = _SYMBOL_BEFORE_TEXT_RE.sub(_space_after_symbol, text)
    return _MULTI_SPACE_RE.sub(" ", text).strip()


def _match_punctuation(tokens: Sequence[str], index: int) -> Optional[Tuple[str, int]]:
    """Return (symbol, tokens consumed) for a punctuation word at ``index``."""
    if index + 1 < len(tokens):
        phrase = (tokens[index].lower(), tokens[index + 1].lower())
        if phrase in PUNCTUATION_PHRASES:
            return PUNCTUATION_PHRASES[phrase], 2
    if index < len(tokens):
        symbol = PUNCTUATION_WORDS.get(tokens[index].lower())
        if symbol is not None:
            return symbol, 1
    return None


def _rebuild(tokens: Sequence[str]) -> List[str]:
    out: List[str] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.lower() == ESCAPE_WORD:
            escaped = _match_punctuation(tokens, i + 1)
            if escaped is not None:
                width = escaped[1]
                out.extend(tokens[i + 1 : i + 1 + width])
                i += 1 + width
                continue
        match = _match_punctuation(tokens, i)
        if match is not None:
            symbol, width = match
            if out:
                out[-1] += symbol
            else:
                out.append(symbol)
            i += width
            continue
        out.append(token)
        i += 1
    return out


def normalize_transcript(text: str) -> str:
    """Convert spoken punctuation to symbols and clean up the spacing.

    Args:
        text: Raw transcript text, possibly spanning several lines.

    Returns:
        Single‑line text with punctuation attached to the preceding word,
        or :data:`EMPTY_TRANSCRIPT_PLACEHOLDER` if nothing is left.
    """
    # Line breaks and whitespace runs become single spaces, and symbols
    # glued to the next word are split off so that word is seen on its own.
    flat = tidy_spacing(" ".join(text.split()))
    result = tidy_spacing(" ".join(_rebuild(flat.split())))
    return result or EMPTY_TRANSCRIPT_PLACEHOLDER
