"""
Data Models for Content Combiner Function

Wire models for inbound publication events, the combined outbound message and
the policy agent decision.
"""

import json
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .errors import MalformedInputError

CONTENT_COLLECTION_TYPE = "ContentCollection"


# ============================================================================
# Content
# ============================================================================

class ContentModel(dict):
    """
    Open mapping for one published item (article, video, content package...).

    Upstream schemas vary by content type, so the payload stays a plain dict.
    Only the keys read by the combiner get typed accessors; absent keys read
    as empty values.
    """

    def _get_string(self, key: str) -> str:
        value = self.get(key)
        return value if isinstance(value, str) else ""

    def get_uuid(self) -> str:
        return self._get_string("uuid")

    def get_type(self) -> str:
        return self._get_string("type")

    def get_last_modified(self) -> str:
        return self._get_string("lastModified")

    def is_deleted(self) -> bool:
        value = self.get("deleted")
        if isinstance(value, bool):
            return value
        return isinstance(value, str) and value.lower() == "true"


# ============================================================================
# Annotations
# ============================================================================

class NullTolerantModel(BaseModel):
    """Base for annotation models: an explicit JSON null reads as the field default."""
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class IndustryClassification(NullTolerantModel):
    """NAICS industry classification attached to an organisation concept."""

    identifier: str = ""
    pref_label: str = Field(default="", alias="prefLabel")
    rank: int = 0


class Thing(NullTolerantModel):
    """Concept referenced by an annotation, as returned by the internal content API."""

    id: str = ""
    pref_label: str = Field(default="", alias="prefLabel")
    types: List[str] = Field(default_factory=list)
    predicate: str = ""
    api_url: str = Field(default="", alias="apiUrl")
    direct_type: str = Field(default="", alias="directType")
    type: str = ""
    lei_code: str = Field(default="", alias="leiCode")
    figi: str = Field(default="", alias="FIGI")
    naics: List[IndustryClassification] = Field(default_factory=list, alias="NAICS")
    is_deprecated: bool = Field(default=False, alias="isDeprecated")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with empty fields omitted."""
        data = self.model_dump(by_alias=True, exclude_defaults=True)
        if self.naics:
            # classifications keep their zero values
            data["NAICS"] = [n.model_dump(by_alias=True) for n in self.naics]
        return data


class Annotation(NullTolerantModel):
    """A content-to-concept relationship."""
    thing: Thing = Field(default_factory=Thing)

    def to_dict(self) -> Dict[str, Any]:
        return {"thing": self.thing.to_dict()}


class AnnotationsModel(NullTolerantModel):
    """Payload of a concept-annotation event."""
    annotations: List[Annotation] = Field(default_factory=list)
    uuid: str = ""


# ============================================================================
# Inbound Messages
# ============================================================================

class ContentMessage(BaseModel):
    """Body of a content publication event."""
    model_config = ConfigDict(populate_by_name=True)

    content_uri: str = Field(default="", alias="contentUri")
    payload: Optional[Dict[str, Any]] = None
    last_modified: str = Field(default="", alias="lastModified")

    @field_validator("content_uri", "last_modified", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def content(self) -> ContentModel:
        return ContentModel(self.payload or {})

    @classmethod
    def parse(cls, body: str) -> "ContentMessage":
        try:
            return cls.model_validate_json(body)
        except ValidationError as e:
            raise MalformedInputError(f"could not unmarshal content message: {e}") from e


class AnnotationsMessage(BaseModel):
    """Body of a concept-annotation event."""
    model_config = ConfigDict(populate_by_name=True)

    content_uri: str = Field(default="", alias="contentUri")
    payload: Optional[AnnotationsModel] = None
    last_modified: str = Field(default="", alias="lastModified")

    @field_validator("content_uri", "last_modified", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def get_content_uuid(self) -> str:
        if self.payload is None:
            return ""
        return self.payload.uuid

    @classmethod
    def parse(cls, body: str) -> "AnnotationsMessage":
        try:
            return cls.model_validate_json(body)
        except ValidationError as e:
            raise MalformedInputError(f"could not unmarshal annotations message: {e}") from e


@dataclass
class QueueMessage:
    """Transport-neutral message: string headers plus a raw body."""
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""


# ============================================================================
# Output Models
# ============================================================================

@dataclass
class CombinedModel:
    """Joined view of public content, internal content and annotations for one item."""
    uuid: str = ""
    content: Optional[ContentModel] = None
    internal_content: Optional[ContentModel] = None
    metadata: Optional[List[Annotation]] = None
    content_uri: str = ""
    last_modified: str = ""
    deleted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        # Key order is part of the outbound contract
        return {
            "uuid": self.uuid,
            "content": dict(self.content) if self.content is not None else None,
            "internalContent": dict(self.internal_content) if self.internal_content is not None else None,
            "metadata": [a.to_dict() for a in self.metadata] if self.metadata is not None else None,
            "contentUri": self.content_uri,
            "lastModified": self.last_modified,
            "deleted": self.deleted,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CombinedModel":
        content = data.get("content")
        internal_content = data.get("internalContent")
        metadata = data.get("metadata")
        return cls(
            uuid=data.get("uuid") or "",
            content=ContentModel(content) if content is not None else None,
            internal_content=ContentModel(internal_content) if internal_content is not None else None,
            metadata=[Annotation.model_validate(a) for a in metadata] if metadata is not None else None,
            content_uri=data.get("contentUri") or "",
            last_modified=data.get("lastModified") or "",
            deleted=bool(data.get("deleted", False)),
        )

    @classmethod
    def from_json(cls, body: str) -> "CombinedModel":
        return cls.from_dict(json.loads(body))


class PolicyDecision(BaseModel):
    """Skip flag and human-readable reasons returned by the policy agent."""
    skip: bool = False
    reasons: List[str] = Field(default_factory=list)
