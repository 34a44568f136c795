# src/pipeline/content_builder.py — v1
"""Enriched embedding text for a document.

Concatenates labelled metadata fields and appends fixed blocks of related
terms for a few known document classes (voter cards, national ID cards,
resumes) so short filenames still retrieve well.
"""

from __future__ import annotations

import re

from docsemantic.core.models import Document

DEFAULT_MIN_LENGTH = 20

_EXTENSION_RE = re.compile(r"\.[^.]+$")

VOTER_TERMS = (
    "Voting document. Election identification. Citizen ID card. Electoral registration. "
)
NATIONAL_ID_TERMS = (
    "National identity card. Government ID. Citizen identification. "
    "Official identity document. "
)
RESUME_TERMS = (
    "Professional resume. Career document. Employment history. Skills profile. "
)
DESCRIPTION_ID_TERMS = (
    "Personal identification document. Identity verification. Official ID card. "
)
CATEGORY_ID_TERMS = (
    "Identity document. Personal identification. Official government ID. "
    "National identity card. Citizen identification. State issued ID. "
    "Identity verification document. Personal identity proof. "
    "Government identification. Voter registration card. "
    "Electoral identification document. "
)
TYPE_TERMS = "Official document. Government paperwork. Personal records. "

# (substrings matched in the lowercased filename, appended block)
FILENAME_EXPANSIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("voter",), VOTER_TERMS),
    (("addhaar", "aadhaar"), NATIONAL_ID_TERMS),
    (("resume", "cv"), RESUME_TERMS),
)


def normalize_filename(filename: str) -> str:
    """Strip the extension and turn ``_`` / ``-`` separators into spaces."""
    stem = _EXTENSION_RE.sub("", filename)
    return stem.replace("_", " ").replace("-", " ")


def build_embedding_content(
    document: Document, min_length: int = DEFAULT_MIN_LENGTH
) -> str:
    """Build the text sent to the embedding provider for ``document``.

    Falls back to ``"Document: <filename or 'untitled document'>"`` when the
    enriched text is shorter than ``min_length``.
    """
    parts: list[str] = []

    filename = document.original_filename
    if filename:
        parts.append(f"Document: {normalize_filename(filename)}. ")
        lowered = filename.lower()
        for needles, terms in FILENAME_EXPANSIONS:
            if any(n in lowered for n in needles):
                parts.append(terms)

    if document.description:
        parts.append(f"Description: {document.description}. ")
        lowered = document.description.lower()
        if "id" in lowered or "identity" in lowered:
            parts.append(DESCRIPTION_ID_TERMS)

    if document.category:
        parts.append(f"Category: {document.category}. ")
        lowered = document.category.lower()
        if "national id" in lowered or "id" in lowered:
            parts.append(CATEGORY_ID_TERMS)

    if document.document_type:
        parts.append(f"Type: {document.document_type} document. ")
        parts.append(TYPE_TERMS)

    content = "".join(parts).strip()
    if len(content) < min_length:
        return f"Document: {filename or 'untitled document'}"
    return content
