# ============================================
# file: src/wsg_check/parser/model.py
# ============================================
from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from wsg_check.core.utils.frozen import FrozenAnyDict, FrozenIntDict, FrozenStrDict

ResourceType = Literal["stylesheet", "script", "image", "font", "media", "other"]

RESOURCE_TYPES = ("stylesheet", "script", "image", "font", "media", "other")


class MetaTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    property: Optional[str] = None
    http_equiv: Optional[str] = None
    charset: Optional[str] = None
    content: Optional[str] = None


class LinkRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    rel: Optional[str] = None
    href: Optional[str] = None
    type: Optional[str] = None
    media: Optional[str] = None


class ResourceReference(BaseModel):
    """An external resource referenced by the page; `attributes` keeps every HTML attribute."""
    model_config = ConfigDict(frozen=True)

    type: ResourceType
    url: str
    attributes: FrozenStrDict = Field(default_factory=dict, validate_default=True)


class HeadingNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: int
    text: str = ""


class StructuredData(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "unknown"
    data: FrozenAnyDict = Field(default_factory=dict, validate_default=True)


class FormInputInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    has_label: bool = False
    has_autocomplete: bool = False
    has_inputmode: bool = False


class ParsedDocument(BaseModel):
    """
    The structured view of one HTML document that rules work on.

    Everything is optional or empty-by-default, so an empty body yields a
    valid (empty) document.
    """
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    lang: Optional[str] = None
    meta_tags: Tuple[MetaTag, ...] = ()
    links: Tuple[LinkRef, ...] = ()
    resources: Tuple[ResourceReference, ...] = ()
    headings: Tuple[HeadingNode, ...] = ()
    has_skip_link: bool = False
    landmarks: Tuple[str, ...] = ()
    aria_attributes: Tuple[str, ...] = ()
    structured_data: Tuple[StructuredData, ...] = ()
    doctype: Optional[str] = None
    form_inputs: Tuple[FormInputInfo, ...] = ()
    # Elements the semantic and version checks inspect
    role_buttons: int = 0
    deprecated_elements: Tuple[str, ...] = ()
    has_breadcrumb_nav: bool = False
    # Text of every inline <style> block, in document order
    inline_styles: Tuple[str, ...] = ()
    # HTML comments, excluding IE conditional comments
    comment_count: int = 0

    def resources_of_type(self, resource_type: str) -> List[ResourceReference]:
        return [r for r in self.resources if r.type == resource_type]

    def find_meta(self, name: Optional[str] = None, prop: Optional[str] = None) -> Optional[MetaTag]:
        """Returns the first meta tag with the given name or property (case-insensitive)."""
        for tag in self.meta_tags:
            if name and (tag.name or "").lower() == name.lower():
                return tag
            if prop and (tag.property or "").lower() == prop.lower():
                return tag
        return None


class CompressionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_compressed: bool = False
    type: Optional[str] = None


class ClassifiedResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    type: ResourceType
    is_third_party: bool


class PageWeight(BaseModel):
    """
    Page weight metrics derived from the fetch and the parsed document.

    Sub-resources are never fetched; `resource_count` is a proxy for their
    weight and `html_size` is the transfer size of the document itself.
    """
    model_config = ConfigDict(frozen=True)

    html_size: int = 0
    resource_count: int = 0
    first_party_count: int = 0
    third_party_count: int = 0
    compression: CompressionInfo = Field(default_factory=CompressionInfo)
    by_type: FrozenIntDict = Field(
        default_factory=lambda: {t: 0 for t in RESOURCE_TYPES}, validate_default=True
    )
