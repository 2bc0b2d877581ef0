"""
ArangoDB Collection - Interface for document operations
"""
from typing import Any, Dict, List, Optional

from .connection import Connection
from .exceptions import COLLECTION_NOT_FOUND, DOCUMENT_NOT_FOUND
from .handles import ReadDocumentOptions, Selector, document_handle
from .request import RequestDescriptor


class Collection:
    """
    Collection object for performing document operations.

    Every selector is resolved to a document handle before any request is
    built, so a malformed selector never reaches the server.

    Args:
        connection: Connection used for requests
        name: Collection name

    Example:
        >>> users = client.collection('users')
        >>> users.save({'_key': 'alice', 'age': 30})
    """

    def __init__(self, connection: Connection, name: str):
        self._connection = connection
        self.name = name
        self._base_path = f"/_api/collection/{name}"

    def _request(self, method: str, path: str, **kwargs):
        return self._connection.request(RequestDescriptor.build(method, path, **kwargs))

    # Collection lifecycle

    def get(self) -> Dict[str, Any]:
        """
        Get collection metadata.

        Returns:
            Collection metadata (name, type, status, ...)
        """
        return self._request("GET", self._base_path).body

    def exists(self) -> bool:
        """
        Check whether the collection exists.

        Example:
            >>> users.exists()
            True
        """
        result = self._connection.dispatch(RequestDescriptor.build("GET", self._base_path))
        return result.map(lambda _: True).recover(COLLECTION_NOT_FOUND, default=False).unwrap()

    def create(self, **properties: Any) -> Dict[str, Any]:
        """
        Create the collection.

        Args:
            **properties: Collection properties (waitForSync, type, ...)

        Returns:
            Collection properties
        """
        body = dict(properties)
        body["name"] = self.name
        return self._request("POST", "/_api/collection", body=body).body

    def drop(self, is_system: Optional[bool] = None) -> Dict[str, Any]:
        """Drop (delete) the collection."""
        return self._request("DELETE", self._base_path, params={"isSystem": is_system}).body

    def count(self) -> int:
        """
        Count documents in the collection.

        Returns:
            Number of documents
        """
        return self._request("GET", f"{self._base_path}/count").body.get("count", 0)

    def truncate(self) -> Dict[str, Any]:
        """Remove all documents from the collection."""
        return self._request("PUT", f"{self._base_path}/truncate").body

    # Documents

    def document_exists(self, selector: Selector) -> bool:
        """
        Check whether a document exists.

        Args:
            selector: Document key, id, or document

        Returns:
            True if the document exists
        """
        handle = document_handle(selector, self.name)
        return self._request("HEAD", f"/_api/document/{handle}").found

    def document(
        self,
        selector: Selector,
        options: Optional[ReadDocumentOptions] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch a single document.

        Args:
            selector: Document key, id, or document
            options: Read options; ``graceful`` returns None for a missing
                     document instead of raising

        Returns:
            The document, or None in graceful mode when it does not exist

        Example:
            >>> users.document('alice')
            >>> users.document('ghost', ReadDocumentOptions(graceful=True))
        """
        options = options or ReadDocumentOptions()
        handle = document_handle(selector, self.name)
        result = self._connection.dispatch(
            RequestDescriptor.build(
                "GET",
                f"/_api/document/{handle}",
                allow_dirty_read=options.allow_dirty_read,
            )
        ).map(lambda response: response.body)
        if options.graceful:
            result = result.recover(DOCUMENT_NOT_FOUND)
        return result.unwrap()

    def save(
        self,
        data: Any,
        return_new: Optional[bool] = None,
        wait_for_sync: Optional[bool] = None,
        silent: Optional[bool] = None,
    ) -> Any:
        """
        Insert one document, or a list of documents.

        Args:
            data: Document or list of documents
            return_new: Include the stored document in the result
            wait_for_sync: Wait until the write is synced to disk
            silent: Return an empty result

        Returns:
            Document metadata (``_id``, ``_key``, ``_rev``)
        """
        params = {"returnNew": return_new, "waitForSync": wait_for_sync, "silent": silent}
        return self._request("POST", f"/_api/document/{self.name}", body=data, params=params).body

    def replace(
        self,
        selector: Selector,
        data: Dict[str, Any],
        rev: Optional[str] = None,
        return_old: Optional[bool] = None,
        return_new: Optional[bool] = None,
        wait_for_sync: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Replace a document.

        Args:
            selector: Document key, id, or document
            data: New document body
            rev: Only replace if the document still has this revision

        Returns:
            Document metadata
        """
        handle = document_handle(selector, self.name)
        params = {"returnOld": return_old, "returnNew": return_new, "waitForSync": wait_for_sync}
        return self._request("PUT", f"/_api/document/{handle}", body=data, params=params, rev=rev).body

    def update(
        self,
        selector: Selector,
        patch: Dict[str, Any],
        rev: Optional[str] = None,
        keep_null: Optional[bool] = None,
        merge_objects: Optional[bool] = None,
        return_old: Optional[bool] = None,
        return_new: Optional[bool] = None,
        wait_for_sync: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Partially update a document.

        Args:
            selector: Document key, id, or document
            patch: Attributes to change
            rev: Only update if the document still has this revision
            keep_null: Store null values instead of removing the attributes
            merge_objects: Merge nested objects instead of replacing them

        Returns:
            Document metadata

        Example:
            >>> users.update('alice', {'age': 31})
        """
        handle = document_handle(selector, self.name)
        params = {
            "keepNull": keep_null,
            "mergeObjects": merge_objects,
            "returnOld": return_old,
            "returnNew": return_new,
            "waitForSync": wait_for_sync,
        }
        return self._request("PATCH", f"/_api/document/{handle}", body=patch, params=params, rev=rev).body

    def remove(
        self,
        selector: Selector,
        rev: Optional[str] = None,
        return_old: Optional[bool] = None,
        wait_for_sync: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Remove a document.

        Args:
            selector: Document key, id, or document
            rev: Only remove if the document still has this revision

        Returns:
            Document metadata
        """
        handle = document_handle(selector, self.name)
        params = {"returnOld": return_old, "waitForSync": wait_for_sync}
        return self._request("DELETE", f"/_api/document/{handle}", params=params, rev=rev).body

    def remove_many(self, selectors: List[Selector]) -> List[Dict[str, Any]]:
        """Remove several documents in one request."""
        handles = [document_handle(selector, self.name) for selector in selectors]
        return self._request("DELETE", f"/_api/document/{self.name}", body=handles).body

    def __repr__(self) -> str:
        return f"Collection(name='{self.name}')"
