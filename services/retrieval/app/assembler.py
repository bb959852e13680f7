"""Context assembly: passages -> prompt context + user-facing sources.

Pure functions only; no I/O and no mutation of the input passages. The same
passages always produce the same context text and the same sources, in the
order retrieval returned them.

The prompt receives each passage's full text. Only the user-facing
``Source.excerpt`` is truncated.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from shared.models import AssembledContext, RetrievedPassage, Source

EXCERPT_MAX_LENGTH = 200
ELLIPSIS = "..."

DOC_TYPE_RESUME = "Resume"
DOC_TYPE_ARCHITECTURE = "Architecture Doc"
DOC_TYPE_CASE_STUDY = "Case Study"
DOC_TYPE_BLOG = "Technical Blog"
DOC_TYPE_DEFAULT = "Document"

# Checked in order; first match wins.
_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("resume", "cv"), DOC_TYPE_RESUME),
    (("architecture", "design"), DOC_TYPE_ARCHITECTURE),
    (("case", "study"), DOC_TYPE_CASE_STUDY),
    (("blog", "post"), DOC_TYPE_BLOG),
)


def document_title(location_id: Optional[str]) -> str:
    """Return the last path segment of ``location_id``.

    ``s3://bucket/documents/resume.pdf`` -> ``resume.pdf``. Ids without a
    usable separator are returned whole; empty ids map to "Document".
    """
    if not location_id:
        return DOC_TYPE_DEFAULT
    last_slash = location_id.rfind("/")
    if 0 <= last_slash < len(location_id) - 1:
        return location_id[last_slash + 1 :]
    return location_id


def classify_document(title: str) -> str:
    lower = title.lower()
    for keywords, label in _TYPE_RULES:
        if any(k in lower for k in keywords):
            return label
    return DOC_TYPE_DEFAULT


def make_excerpt(text: str, max_length: int = EXCERPT_MAX_LENGTH) -> str:
    if len(text) > max_length:
        return text[:max_length] + ELLIPSIS
    return text


def build_source(
    passage: RetrievedPassage, excerpt_max_length: int = EXCERPT_MAX_LENGTH
) -> Source:
    title = document_title(passage.location_id)
    return Source(
        id=passage.location_id,
        title=title,
        type=classify_document(title),
        confidence=passage.score,
        excerpt=make_excerpt(passage.text, excerpt_max_length),
    )


def assemble(
    passages: Sequence[RetrievedPassage],
    excerpt_max_length: int = EXCERPT_MAX_LENGTH,
) -> AssembledContext:
    """Build the prompt context block and the source list from ``passages``.

    Each passage contributes ``--- {title} ---`` followed by its full text
    and a blank line.
    """
    if not passages:
        return AssembledContext(context_text="", sources=[])

    sources: List[Source] = []
    parts: List[str] = []
    for passage in passages:
        source = build_source(passage, excerpt_max_length)
        sources.append(source)
        parts.append(f"--- {source.title} ---\n{passage.text}\n\n")
    return AssembledContext(context_text="".join(parts), sources=sources)
