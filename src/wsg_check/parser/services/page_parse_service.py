from __future__ import annotations

import json
import logging
import re
from typing import Dict, List, Optional, Set

from bs4 import BeautifulSoup, Comment, Doctype, Tag
from bs4.builder import ParserRejectedMarkup

from wsg_check.core.errors import ParseError
from wsg_check.crawler.utils.url_utils import UrlUtils
from wsg_check.parser.model import (
    FormInputInfo,
    HeadingNode,
    LinkRef,
    MetaTag,
    ParsedDocument,
    ResourceReference,
    StructuredData,
)

logger = logging.getLogger(__name__)

SKIP_LINK_PATTERNS = [
    re.compile(r"skip.*nav", re.I),
    re.compile(r"skip.*content", re.I),
    re.compile(r"skip.*main", re.I),
    re.compile(r"jump.*content", re.I),
    re.compile(r"go.*main", re.I),
]

LANDMARK_ELEMENTS = ("header", "nav", "main", "aside", "footer", "section", "form")
LANDMARK_ROLES = {"banner", "navigation", "main", "complementary", "contentinfo", "search", "form", "region"}

# Roles on <div>/<span> that a native element already provides
NATIVE_ROLES = {"button", "checkbox", "link", "tab", "menuitem", "option", "radio", "switch"}

DEPRECATED_ELEMENTS = (
    "font", "center", "marquee", "blink", "frameset", "frame", "noframes", "applet", "dir", "basefont",
)

PRELOAD_TYPES = {"font": "font", "script": "script", "style": "stylesheet", "image": "image"}

CONDITIONAL_COMMENT = re.compile(r"^\[if\s", re.I)


class PageParseService:
    """
    Extracts the structural data the rules need from an HTML document.
    Stateless apart from the parsed soup; build one per document.
    """

    def __init__(self, page_content: str, base_url: str = ""):
        try:
            self.soup = BeautifulSoup(page_content or "", "html.parser")
        except (ParserRejectedMarkup, AssertionError) as e:
            raise ParseError("Failed to parse HTML", cause=e) from e
        self.base_url = base_url

    @staticmethod
    def _attrs(el: Tag) -> Dict[str, str]:
        """Element attributes as plain strings; multi-valued ones (class, rel) are space-joined."""
        out: Dict[str, str] = {}
        for key, value in el.attrs.items():
            if isinstance(value, (list, tuple)):
                value = " ".join(value)
            out[key.lower()] = value if isinstance(value, str) else ""
        return out

    def _resolve(self, href: Optional[str]) -> str:
        return UrlUtils.resolve(self.base_url, href)

    def _head_scope(self):
        return self.soup.head or self.soup

    # -------- Document & Meta Extraction --------

    def extract_doctype(self) -> Optional[str]:
        for node in self.soup.contents:
            if isinstance(node, Doctype):
                return f"<!DOCTYPE {node.strip()}>"
        return None

    def extract_page_title(self) -> Optional[str]:
        """Retrieves the content of the first <title> tag."""
        el = self.soup.find("title")
        text = el.get_text(strip=True) if el else ""
        return text or None

    def extract_lang(self) -> Optional[str]:
        html = self.soup.find("html")
        if not html:
            return None
        lang = html.get("lang")
        return lang if isinstance(lang, str) else None

    def extract_meta_tags(self) -> List[MetaTag]:
        tags: List[MetaTag] = []
        for meta in self._head_scope().find_all("meta"):
            attrs = self._attrs(meta)
            tags.append(MetaTag(
                name=attrs.get("name") or None,
                property=attrs.get("property") or None,
                http_equiv=attrs.get("http-equiv") or None,
                charset=attrs.get("charset") or None,
                content=attrs.get("content") or None,
            ))
        return tags

    def extract_links(self) -> List[LinkRef]:
        links: List[LinkRef] = []
        for link in self._head_scope().find_all("link"):
            attrs = self._attrs(link)
            links.append(LinkRef(
                rel=attrs.get("rel"),
                href=attrs.get("href"),
                type=attrs.get("type"),
                media=attrs.get("media"),
            ))
        return links

    # -------- Resource Extraction --------

    @staticmethod
    def _rel_values(el: Tag) -> List[str]:
        rel = el.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        return [r.lower() for r in rel]

    def extract_resources(self) -> List[ResourceReference]:
        """
        Collects referenced stylesheets, scripts, images (src and srcset),
        preloads and media sources, in that order.
        """
        resources: List[ResourceReference] = []

        for link in self.soup.find_all("link"):
            if "stylesheet" not in self._rel_values(link):
                continue
            attrs = self._attrs(link)
            url = self._resolve(attrs.get("href"))
            if url:
                resources.append(ResourceReference(type="stylesheet", url=url, attributes=attrs))

        for script in self.soup.find_all("script", src=True):
            attrs = self._attrs(script)
            url = self._resolve(attrs.get("src"))
            if url:
                resources.append(ResourceReference(type="script", url=url, attributes=attrs))

        for img in self.soup.find_all("img"):
            attrs = self._attrs(img)
            seen: Set[str] = set()
            url = self._resolve(attrs.get("src"))
            if url:
                seen.add(url)
                resources.append(ResourceReference(type="image", url=url, attributes=attrs))
            srcset = attrs.get("srcset")
            if srcset:
                for part in srcset.split(","):
                    candidate = part.strip().split()
                    if not candidate:
                        continue
                    src_url = self._resolve(candidate[0])
                    if src_url and src_url not in seen:
                        seen.add(src_url)
                        resources.append(ResourceReference(
                            type="image", url=src_url, attributes={"srcset": srcset}
                        ))

        for link in self.soup.find_all("link"):
            if "preload" not in self._rel_values(link):
                continue
            attrs = self._attrs(link)
            url = self._resolve(attrs.get("href"))
            if not url:
                continue
            resource_type = PRELOAD_TYPES.get((attrs.get("as") or "").lower(), "other")
            resources.append(ResourceReference(type=resource_type, url=url, attributes=attrs))

        for media in self.soup.find_all(["video", "audio", "source"], src=True):
            attrs = self._attrs(media)
            url = self._resolve(attrs.get("src"))
            if url:
                resources.append(ResourceReference(type="media", url=url, attributes=attrs))

        return resources

    # -------- Structure Extraction --------

    def extract_headings(self) -> List[HeadingNode]:
        """All h1-h6 elements in document order."""
        return [
            HeadingNode(level=int(tag.name[1]), text=tag.get_text(" ", strip=True))
            for tag in self.soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
        ]

    def extract_has_skip_link(self) -> bool:
        for a in self.soup.find_all("a", href=True):
            href = a.get("href")
            if not isinstance(href, str) or not href.startswith("#"):
                continue
            text = a.get_text(strip=True)
            label = a.get("aria-label") or ""
            if any(p.search(text) or p.search(label) for p in SKIP_LINK_PATTERNS):
                return True
        return False

    def extract_landmarks(self) -> List[str]:
        found: Set[str] = {tag for tag in LANDMARK_ELEMENTS if self.soup.find(tag)}
        for el in self.soup.find_all(attrs={"role": True}):
            role = (self._attrs(el).get("role") or "").lower()
            if role in LANDMARK_ROLES:
                found.add(role)
        return sorted(found)

    def extract_aria_attributes(self) -> List[str]:
        names: Set[str] = set()
        for el in self.soup.find_all(True):
            names.update(k.lower() for k in el.attrs if k.lower().startswith("aria-"))
        return sorted(names)

    def count_role_buttons(self) -> int:
        """Counts <div>/<span> elements re-implementing native controls via role=."""
        count = 0
        for el in self.soup.find_all(["div", "span"], attrs={"role": True}):
            if (self._attrs(el).get("role") or "").lower() in NATIVE_ROLES:
                count += 1
        return count

    def extract_deprecated_elements(self) -> List[str]:
        return [name for name in DEPRECATED_ELEMENTS if self.soup.find(name)]

    def extract_has_breadcrumb_nav(self) -> bool:
        label = self.soup.find(attrs={"aria-label": re.compile("breadcrumb", re.I)})
        return label is not None

    def extract_inline_styles(self) -> List[str]:
        return [style.get_text() for style in self.soup.find_all("style")]

    def count_comments(self) -> int:
        """HTML comments outside IE conditional comments."""
        comments = self.soup.find_all(string=lambda s: isinstance(s, Comment))
        return sum(1 for c in comments if not CONDITIONAL_COMMENT.match(c))

    def extract_structured_data(self) -> List[StructuredData]:
        """Parses JSON-LD blocks; malformed ones are skipped."""
        data: List[StructuredData] = []
        for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
            txt = script.string or script.get_text() or ""
            if not txt.strip():
                continue
            try:
                parsed = json.loads(txt)
            except json.JSONDecodeError:
                logger.debug("Skipping malformed JSON-LD block on %s", self.base_url)
                continue
            if not isinstance(parsed, dict):
                continue
            ld_type = parsed.get("@type")
            data.append(StructuredData(
                type=ld_type if isinstance(ld_type, str) else "unknown",
                data=parsed,
            ))
        return data

    def extract_form_inputs(self) -> List[FormInputInfo]:
        labelled_ids = {
            label.get("for") for label in self.soup.find_all("label", attrs={"for": True})
        }
        inputs: List[FormInputInfo] = []
        for el in self.soup.find_all(["input", "select", "textarea"]):
            attrs = self._attrs(el)
            if el.name == "input" and attrs.get("type", "").lower() == "hidden":
                continue
            input_type = attrs.get("type") or ("text" if el.name == "input" else el.name)
            input_id = attrs.get("id")
            has_label = (input_id is not None and input_id in labelled_ids) or el.find_parent("label") is not None
            inputs.append(FormInputInfo(
                type=input_type,
                has_label=has_label,
                has_autocomplete="autocomplete" in attrs,
                has_inputmode="inputmode" in attrs,
            ))
        return inputs

    def parse(self) -> ParsedDocument:
        return ParsedDocument(
            title=self.extract_page_title(),
            lang=self.extract_lang(),
            meta_tags=self.extract_meta_tags(),
            links=self.extract_links(),
            resources=self.extract_resources(),
            headings=self.extract_headings(),
            has_skip_link=self.extract_has_skip_link(),
            landmarks=self.extract_landmarks(),
            aria_attributes=self.extract_aria_attributes(),
            structured_data=self.extract_structured_data(),
            doctype=self.extract_doctype(),
            form_inputs=self.extract_form_inputs(),
            role_buttons=self.count_role_buttons(),
            deprecated_elements=self.extract_deprecated_elements(),
            has_breadcrumb_nav=self.extract_has_breadcrumb_nav(),
            inline_styles=self.extract_inline_styles(),
            comment_count=self.count_comments(),
        )


def parse_html(raw: str, base_url: str = "") -> ParsedDocument:
    """
    Parses raw HTML into a ParsedDocument. Relative references are resolved
    against `base_url`. An empty body yields an empty document.

    Raises:
        ParseError: when the markup cannot be processed at all.
    """
    if not raw or not raw.strip():
        return ParsedDocument()
    return PageParseService(raw, base_url).parse()
