"""
Filler Word Cleaner

Removes disfluencies ("um", "you know", ...) from transcript text without
touching case or legitimate words.
"""

import re

DEFAULT_FILLER_WORDS = [
    "um",
    "umm",
    "uh",
    "er",
    "ah",
    "eh",
    "a",  # only in filler context, see _is_filler_article
    "like",
    "you know",
    "well",
    "so",
    "actually",
    "basically",
]

MULTIPLE_SPACES = re.compile(r" +")
SPACE_BEFORE_PUNCTUATION = re.compile(r" +([.,!?;:])")
MULTIPLE_NEWLINES = re.compile(r"\n{3,}")
STRIP_CHARS = re.compile(r"""[.,!?;:()\[\]{}'"\s]+""")
SENTENCE_END = (".", "!", "?", ";", ":")

ARTICLE = "a"


def strip_punctuation(word: str) -> str:
    """Comparison form of a token: punctuation and whitespace removed."""
    return STRIP_CHARS.sub("", word).strip()


def _next_word(words: list[str], i: int) -> str | None:
    for word in words[i + 1:]:
        if word:
            return word
    return None


def _is_filler_article(words: list[str], i: int, kept: list[str], fillers: list[str]) -> bool:
    # "a" is usually an article. It is a filler when another filler follows
    # it ("a um"), or when it stands alone ("a," or line-final) at the start
    # of a line or right after sentence punctuation.
    following = _next_word(words, i)
    if following is not None:
        following = strip_punctuation(following.lower())
        if any(f != ARTICLE and following == f for f in fillers):
            return True

    at_boundary = not kept or kept[-1].endswith(SENTENCE_END)
    standalone = words[i].lower() != ARTICLE or following is None
    return at_boundary and standalone


def _clean_line(line: str, fillers: list[str]) -> str:
    words = line.split(" ")
    while words and words[-1] == "":
        words.pop()

    kept: list[str] = []
    i = 0
    while i < len(words):
        word = words[i]
        word_lower = strip_punctuation(word.lower())
        consumed = 1
        is_filler = False

        for filler in fillers:
            if word_lower == ARTICLE and filler == ARTICLE:
                if _is_filler_article(words, i, kept, fillers):
                    is_filler = True
                    break
                continue

            if word_lower == filler:
                is_filler = True
                break

            if " " in filler and i + 1 < len(words):
                following = strip_punctuation(words[i + 1].lower())
                if f"{word_lower} {following}" == filler:
                    is_filler = True
                    consumed = 2
                    break

        if not is_filler and word:
            kept.append(word)
        i += consumed

    return " ".join(kept)


def _clean_once(text: str, fillers: list[str]) -> str:
    cleaned_lines = []
    for line in text.split("\n"):
        if not line.strip():
            cleaned_lines.append(line)
        else:
            cleaned_lines.append(_clean_line(line, fillers))

    result = "\n".join(cleaned_lines)
    result = MULTIPLE_SPACES.sub(" ", result)
    result = SPACE_BEFORE_PUNCTUATION.sub(r"\1", result)
    result = MULTIPLE_NEWLINES.sub("\n\n", result)
    return result.strip()


def clean(text: str | None, filler_words: list[str] | None = None) -> str:
    """Remove filler words from ``text``.

    Works line by line; blank lines are kept, runs of spaces are collapsed,
    spaces before punctuation are dropped, three or more newlines become
    one blank line, and the result is trimmed. Case is never changed.

    Removing a filler can bring two tokens together that form another
    filler ("you um know"), so passes repeat until the text stops changing.
    Each changing pass shortens the text, which bounds the loop, and the
    result is a fixed point: ``clean(clean(x)) == clean(x)``.
    """
    if filler_words is None:
        filler_words = DEFAULT_FILLER_WORDS
    if text is None:
        return ""
    if not text.strip() or not filler_words:
        return text

    fillers = [f.lower() for f in filler_words]
    result = _clean_once(text, fillers)
    while True:
        if not result.strip():
            return result
        again = _clean_once(result, fillers)
        if again == result:
            return result
        result = again


class FillerWordCleaner:
    """Filler-word cleaner bound to a configured word list."""

    def __init__(self, filler_words: list[str] | None = None):
        self.filler_words = list(DEFAULT_FILLER_WORDS if filler_words is None else filler_words)

    def clean(self, text: str | None, filler_words: list[str] | None = None) -> str:
        return clean(text, self.filler_words if filler_words is None else filler_words)
