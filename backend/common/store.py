"""
Document store access used by the services layer.

The services only ever talk to the data layer through three operations:
an equality-only query, a point read and a partial point update. Documents
are plain dicts keyed by field name with the primary key under ``id``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from django.apps import apps
from django.conf import settings
from django.db import transaction
from django.db.models import F

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for document store errors."""
    pass


class UnknownCollectionError(StoreError):
    """Raised when a collection name has no backing model."""
    pass


class DocumentNotFoundError(StoreError):
    """Raised when an update targets a document that does not exist."""
    pass


@dataclass(frozen=True)
class Increment:
    """Delta marker for counter fields, applied by the store itself."""
    amount: int = 1


class DocumentStore:
    """Interface the matching and activity services depend on."""

    def query(self, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get(self, collection: str, doc_id: Any, for_update: bool = False) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def update(self, collection: str, doc_id: Any, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def atomic(self):
        raise NotImplementedError


# Collection name -> model label
DEFAULT_COLLECTIONS = {
    "rides": "rides.Ride",
    "users": None,  # resolved from AUTH_USER_MODEL
}


class DjangoDocumentStore(DocumentStore):
    """DocumentStore backed by the Django ORM."""

    def __init__(self, collections: Optional[Dict[str, Optional[str]]] = None):
        self.collections = dict(collections or DEFAULT_COLLECTIONS)

    def _model(self, collection: str):
        if collection not in self.collections:
            raise UnknownCollectionError(f"Unknown collection: {collection}")
        label = self.collections[collection] or settings.AUTH_USER_MODEL
        return apps.get_model(label)

    @staticmethod
    def to_document(instance) -> Dict[str, Any]:
        doc = {field.attname: getattr(instance, field.attname) for field in instance._meta.concrete_fields}
        doc["id"] = instance.pk
        return doc

    def query(self, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        """Return every document whose fields equal the given values, in insertion order."""
        model = self._model(collection)
        queryset = model.objects.filter(**equals).order_by("pk")
        return [self.to_document(obj) for obj in queryset]

    def get(self, collection: str, doc_id: Any, for_update: bool = False) -> Optional[Dict[str, Any]]:
        """
        Point read by primary key.

        With for_update the row stays locked until the surrounding
        transaction ends; callers must be inside ``atomic()``.
        """
        model = self._model(collection)
        queryset = model.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        obj = queryset.filter(pk=doc_id).first()
        return self.to_document(obj) if obj is not None else None

    def update(self, collection: str, doc_id: Any, fields: Dict[str, Any]) -> None:
        """
        Apply a partial update as a single UPDATE statement.

        Increment markers become F() expressions so counters are bumped by
        the database rather than rewritten from a stale read.
        """
        model = self._model(collection)
        values = {}
        for name, value in fields.items():
            if isinstance(value, Increment):
                values[name] = F(name) + value.amount
            else:
                values[name] = value

        updated = model.objects.filter(pk=doc_id).update(**values)
        if not updated:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        logger.debug("Updated %s/%s fields=%s", collection, doc_id, sorted(values))

    def atomic(self):
        return transaction.atomic()


default_store = DjangoDocumentStore()
