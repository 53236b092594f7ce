"""
Document → model conversion for the domain stores.

Sheets rows can be edited by hand, so a stored document may not fit
its model. Lists skip such documents with a warning; a single read
raises MalformedDocumentError, which the flows treat like any other
storage failure.
"""

from typing import Iterable, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from kakeibo.services.storage.interface import (
    CollectionName,
    Document,
    MalformedDocumentError,
    collection_name,
)


logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse_document(model: Type[M], collection: CollectionName, document: Document) -> M:
    """
    Raises:
        MalformedDocumentError: If the document doesn't validate
    """
    try:
        return model.model_validate(document)
    except ValidationError as e:
        raise MalformedDocumentError(
            f"{collection_name(collection)}/{document.get('id')} is malformed: "
            f"{e.error_count()} invalid field(s)"
        ) from e


def parse_documents(
    model: Type[M],
    collection: CollectionName,
    documents: Iterable[Document],
) -> list[M]:
    """Validate every document, leaving out the ones that don't fit."""
    items: list[M] = []
    for document in documents:
        try:
            items.append(model.model_validate(document))
        except ValidationError as e:
            logger.warning(
                "malformed_document_skipped",
                collection=collection_name(collection),
                document_id=document.get("id"),
                fields=[".".join(str(part) for part in error["loc"]) for error in e.errors()],
            )
    return items
