"""Typed filter expressions over chunk payloads.

Filters are built from a small tagged union of nodes and converted to
``qdrant_client`` models only when a request is sent. The same expression
can be evaluated against a payload in memory, which the deletion fallback
relies on when the store rejects a filtered delete.
"""

import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from qdrant_client import models

_TOKEN = re.compile(r"\w+", re.UNICODE)

TEXT_FIELD = "text"
FILE_NAME_FIELD = "metadata.fileName"
SCHOOL_ID_FIELD = "metadata.schoolId"
COLLECTION_FIELD = "metadata.collection"
INGESTION_ID_FIELD = "metadata.ingestionId"


class MatchCondition(BaseModel):
    """Exact match of a payload field against a keyword value."""

    kind: Literal["match"] = "match"
    key: str
    value: Union[str, int, bool]

    def to_qdrant(self) -> models.FieldCondition:
        return models.FieldCondition(key=self.key, match=models.MatchValue(value=self.value))

    def matches(self, payload: Dict[str, Any]) -> bool:
        return lookup(payload, self.key) == self.value


class TextCondition(BaseModel):
    """Full-text match of a payload field against a query."""

    kind: Literal["text"] = "text"
    key: str
    text: str

    def to_qdrant(self) -> models.FieldCondition:
        return models.FieldCondition(key=self.key, match=models.MatchText(text=self.text))

    def matches(self, payload: Dict[str, Any]) -> bool:
        value = lookup(payload, self.key)
        if not isinstance(value, str):
            return False
        haystack = {token.lower() for token in _TOKEN.findall(value)}
        return all(token.lower() in haystack for token in _TOKEN.findall(self.text))


Condition = Annotated[Union[MatchCondition, TextCondition], Field(discriminator="kind")]


class FilterExpression(BaseModel):
    """Conjunction (``must``) and disjunction (``should``) of conditions."""

    must: List[Condition] = Field(default_factory=list)
    should: List[Condition] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.must and not self.should

    def where(self, key: str, value: Union[str, int, bool]) -> "FilterExpression":
        """Return a copy that additionally requires ``key == value``."""
        return FilterExpression(
            must=[*self.must, MatchCondition(key=key, value=value)], should=list(self.should)
        )

    def containing(self, key: str, text: str) -> "FilterExpression":
        """Return a copy that additionally requires ``key`` to match ``text``."""
        return FilterExpression(
            must=[*self.must, TextCondition(key=key, text=text)], should=list(self.should)
        )

    def to_qdrant(self) -> Optional[models.Filter]:
        """Serialize to the store's wire model; ``None`` when unconstrained."""
        if self.is_empty:
            return None
        return models.Filter(
            must=[condition.to_qdrant() for condition in self.must] or None,
            should=[condition.to_qdrant() for condition in self.should] or None,
        )

    def matches(self, payload: Optional[Dict[str, Any]]) -> bool:
        """Evaluate the expression against a payload in memory."""
        payload = payload or {}
        if not all(condition.matches(payload) for condition in self.must):
            return False
        if self.should and not any(condition.matches(payload) for condition in self.should):
            return False
        return True


def lookup(payload: Dict[str, Any], key: str) -> Any:
    """Resolve a dotted key such as ``metadata.fileName``."""
    current: Any = payload
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def tenant_filter(tenant_id: Optional[str]) -> FilterExpression:
    """Filter restricting chunks to one tenant, or no filter at all."""
    expression = FilterExpression()
    if tenant_id:
        expression = expression.where(SCHOOL_ID_FIELD, tenant_id)
    return expression


def document_filter(
    file_name: str,
    tenant_id: Optional[str] = None,
    ingestion_id: Optional[str] = None,
) -> FilterExpression:
    """Filter selecting the chunks of one logical document."""
    expression = tenant_filter(tenant_id).where(FILE_NAME_FIELD, file_name)
    if ingestion_id:
        expression = expression.where(INGESTION_ID_FIELD, ingestion_id)
    return expression
