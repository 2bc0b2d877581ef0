"""
Document handle resolution.

A handle is the canonical ``"collection/key"`` string identifying a single
document. Selectors are anything a handle can be derived from.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .exceptions import ValidationError


@dataclass(frozen=True)
class DocumentSelector:
    """
    Explicit document selector: exactly one of a full id or a bare key.

    Example:
        >>> DocumentSelector(key="alice")
        >>> DocumentSelector(id="users/alice")
    """

    id: Optional[str] = None
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.id and self.key:
            raise ValidationError("DocumentSelector takes either an id or a key, not both")
        if not self.id and not self.key:
            raise ValidationError("DocumentSelector needs an id or a key")


@dataclass(frozen=True)
class ReadDocumentOptions:
    """
    Options for reading a single document.

    Args:
        graceful: Return None instead of raising when the document is missing
        allow_dirty_read: Allow the read to be served by a follower. None
                          falls back to the client default.
    """

    graceful: bool = False
    allow_dirty_read: Optional[bool] = None


Selector = Union[str, DocumentSelector, Mapping[str, Any], Any]


def _identity(selector: Any, id_field: str, key_field: str):
    if isinstance(selector, DocumentSelector):
        return selector.id, selector.key
    if isinstance(selector, Mapping):
        return selector.get(id_field), selector.get(key_field)
    return getattr(selector, id_field, None), getattr(selector, key_field, None)


def _resolve(selector: Any, collection_name: str, id_field: str, key_field: str) -> str:
    if isinstance(selector, str):
        if not selector:
            raise ValidationError("Document handle must not be empty")
        if "/" not in selector:
            return f"{collection_name}/{selector}"
        return selector

    if selector is None or isinstance(selector, (bytes, int, float, bool)):
        raise ValidationError(f"Document handle must be a string or an object with a {key_field} or {id_field}")

    full_id, key = _identity(selector, id_field, key_field)
    if full_id:
        return str(full_id)
    if key:
        return f"{collection_name}/{key}"
    raise ValidationError(
        f"Document handle must be a string or an object with a {key_field} or {id_field}",
        context={"collection": collection_name},
    )


def document_handle(selector: Selector, collection_name: str) -> str:
    """
    Normalize a selector into a ``"collection/key"`` handle.

    Args:
        selector: Bare key, full id, DocumentSelector, or an object/mapping
                  exposing ``_id`` or ``_key``
        collection_name: Collection owning bare keys

    Returns:
        Document handle

    Raises:
        ValidationError: If no identity can be derived from the selector

    Example:
        >>> document_handle("alice", "users")
        'users/alice'
        >>> document_handle({"_id": "people/bob"}, "users")
        'people/bob'
    """
    if isinstance(selector, DocumentSelector):
        return _resolve(selector, collection_name, "id", "key")
    return _resolve(selector, collection_name, "_id", "_key")

