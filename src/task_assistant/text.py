import re

_WHITESPACE = re.compile(r"\s+")


def single_line(value, limit: int = 255) -> str:
    """Flatten owner-supplied text before it goes into a prompt.

    Newlines are what separate instruction lines in every prompt template,
    so titles and names are collapsed to one line and capped.
    """
    text = _WHITESPACE.sub(" ", str(value or "")).strip()
    if len(text) > limit:
        text = text[: limit - 1].rstrip() + "…"
    return text
