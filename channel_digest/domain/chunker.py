"""Chunker — splits outbound text to fit the message size ceiling."""

from typing import List

MAX_MESSAGE_LENGTH = 2000
ELLIPSIS = "..."


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split text on line boundaries into chunks of at most limit chars.

    Joining the chunks with "\\n" gives back the original text, except that a
    line longer than limit is cut to limit - 3 chars plus "..." and sent alone.
    """
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current: List[str] = []
    current_len = 0

    def flush():
        nonlocal current, current_len
        if current:
            chunks.append("\n".join(current))
        current = []
        current_len = 0

    for line in text.split("\n"):
        if len(line) > limit:
            flush()
            chunks.append(line[: limit - len(ELLIPSIS)] + ELLIPSIS)
            continue
        added = len(line) + (1 if current else 0)
        if current and current_len + added > limit:
            flush()
            added = len(line)
        current.append(line)
        current_len += added
    flush()
    return chunks
