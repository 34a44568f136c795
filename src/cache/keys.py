# src/cache/keys.py — v1
"""Cache key construction.

Every key is built here from its semantic components, so derivation can
be tested without a backend. Keys returned by the ``*_key`` helpers are
namespace-relative; ``full_key`` adds the prefix and namespace, giving
``<prefix><namespace>::<key>``. Patterns use Redis glob syntax, with
user-supplied components escaped.
"""

from __future__ import annotations

import re

from docsemantic.cache.fingerprint import query_hash
from docsemantic.cache.models import CacheNamespace

DEFAULT_PREFIX = "clouddocs:cache:"
NAMESPACE_SEPARATOR = "::"

_GLOB_SPECIAL_RE = re.compile(r"([\\*?\[\]])")


def escape_glob(component: object) -> str:
    """Escape glob metacharacters in a key component."""
    return _GLOB_SPECIAL_RE.sub(r"\\\1", str(component))


def full_key(namespace: CacheNamespace, key: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}{namespace.value}{NAMESPACE_SEPARATOR}{key}"


def namespace_pattern(namespace: CacheNamespace, prefix: str = DEFAULT_PREFIX) -> str:
    """Glob matching every key in ``namespace``."""
    return f"{escape_glob(prefix)}{namespace.value}{NAMESPACE_SEPARATOR}*"


def full_pattern(
    namespace: CacheNamespace, pattern: str, prefix: str = DEFAULT_PREFIX
) -> str:
    """Glob for a namespace-relative ``pattern`` (already escaped)."""
    return f"{escape_glob(prefix)}{namespace.value}{NAMESPACE_SEPARATOR}{pattern}"


def all_keys_pattern(prefix: str = DEFAULT_PREFIX) -> str:
    return f"{escape_glob(prefix)}*"


# === DOCUMENTS ===


def document_key(document_id: int | str) -> str:
    return str(document_id)


def user_documents_page_key(
    user_id: int | str, page: int, size: int, sort_by: str, sort_dir: str
) -> str:
    """One page of a user's document listing."""
    return f"user:{user_id}:page:{page}:size:{size}:sort:{sort_by}:dir:{sort_dir}"


def user_documents_default_key(user_id: int | str) -> str:
    """A user's listing with default paging and sort."""
    return f"user:{user_id}:default"


def user_documents_pattern(user_id: int | str) -> str:
    """Every listing key for one user (pages and default)."""
    return f"user:{escape_glob(user_id)}:*"


# === USERS / CONTENT-DERIVED ===


def user_key(username: str) -> str:
    return username


def ocr_key(file_digest: str) -> str:
    return file_digest


def classification_key(content_digest: str) -> str:
    return content_digest


# === AGGREGATES ===


def dashboard_stats_key(user_id: int | str) -> str:
    return f"stats:{user_id}"


def search_key(scope: str, mode: str, limit: int, query: str) -> str:
    """Signature of one search request; the query text is hashed."""
    return f"{scope}:{mode}:{limit}:{query_hash(query)}"


def search_scope_pattern(scope: str) -> str:
    """Every cached search of one scope."""
    return f"{escape_glob(scope)}:*"
