"""
Base storefront extractor.

An extractor turns raw storefront HTML into a ScrapedAppRecord. Each field
has an ordered list of extraction rules; rules are pure functions of the
page and the first one returning a non-empty value wins. Rule order runs
from the most specific selector to the most generic fallback.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from vrstore.models.app_record import (
    MAX_SCREENSHOTS,
    ScrapedAppRecord,
    Screenshot,
    is_empty_value,
)
from vrstore.utils.file_size import find_file_size
from vrstore.utils.logger import LayerLogger


@dataclass
class PageContext:
    """Parsed page handed to every extraction rule."""
    url: str
    html: str
    soup: BeautifulSoup
    _text: Optional[str] = field(default=None, repr=False)

    @property
    def text(self) -> str:
        """Visible text, one block per line."""
        if self._text is None:
            self._text = self.soup.get_text("\n", strip=True)
        return self._text

    def absolute(self, href: str, base: Optional[str] = None) -> str:
        return urljoin(base or self.url, href.strip())


@dataclass(frozen=True)
class ExtractionRule:
    """A named, pure page -> value function."""
    name: str
    func: Callable[[PageContext], Any]

    def apply(self, page: PageContext) -> Any:
        return self.func(page)


# =============================================================================
# RULE FACTORIES
# =============================================================================

def select_text(selector: str, separator: str = " ") -> ExtractionRule:
    """Text of the first element matching ``selector`` that has any text."""
    def rule(page: PageContext) -> Optional[str]:
        for element in page.soup.select(selector):
            text = element.get_text(separator, strip=True)
            if text:
                return text
        return None
    return ExtractionRule(f"text:{selector}", rule)


def select_attr(selector: str, attr: str, base: Optional[str] = None) -> ExtractionRule:
    """Attribute of the first matching element, resolved to an absolute URL."""
    def rule(page: PageContext) -> Optional[str]:
        for element in page.soup.select(selector):
            value = element.get(attr)
            if value and value.strip():
                return page.absolute(value, base)
        return None
    return ExtractionRule(f"attr:{selector}@{attr}", rule)


def meta_content(name: Optional[str] = None, prop: Optional[str] = None) -> ExtractionRule:
    """Content of a <meta name=...> or <meta property=...> tag."""
    attrs = {"property": prop} if prop else {"name": name}

    def rule(page: PageContext) -> Optional[str]:
        tag = page.soup.find("meta", attrs=attrs)
        if tag and tag.get("content"):
            return tag["content"].strip()
        return None
    return ExtractionRule(f"meta:{prop or name}", rule)


def meta_url(prop: str) -> ExtractionRule:
    """Meta tag holding a URL, resolved against the page URL."""
    inner = meta_content(prop=prop)

    def rule(page: PageContext) -> Optional[str]:
        value = inner.apply(page)
        return page.absolute(value) if value else None
    return ExtractionRule(inner.name, rule)


def title_without(suffix: str) -> ExtractionRule:
    """The <title> text with a storefront suffix removed."""
    def rule(page: PageContext) -> Optional[str]:
        tag = page.soup.find("title")
        if not tag:
            return None
        return tag.get_text().replace(suffix, "").strip()
    return ExtractionRule(f"title-minus:{suffix.strip()}", rule)


def pattern(
    regex: str,
    source: str = "text",
    convert: Optional[Callable[[re.Match], Any]] = None,
    flags: int = 0,
) -> ExtractionRule:
    """
    Regex over the page text, the raw HTML or the page URL.

    ``convert`` turns the match into a value; by default group 1, stripped.
    """
    compiled: Pattern = re.compile(regex, flags)

    def rule(page: PageContext) -> Any:
        haystack = {"text": page.text, "html": page.html, "url": page.url}[source]
        match = compiled.search(haystack)
        if not match:
            return None
        if convert:
            return convert(match)
        return match.group(1).strip()
    return ExtractionRule(f"{source}-pattern:{regex}", rule)


def select_number(selector: str) -> ExtractionRule:
    """First decimal number inside the text of the matching element."""
    inner = select_text(selector)

    def rule(page: PageContext) -> Optional[float]:
        text = inner.apply(page)
        match = re.search(r"(\d+(?:\.\d+)?)", text or "")
        return float(match.group(1)) if match else None
    return ExtractionRule(f"number:{selector}", rule)


def select_file_size(selector: str) -> ExtractionRule:
    """File size parsed from the text of the matching element."""
    inner = select_text(selector)

    def rule(page: PageContext) -> Optional[int]:
        return find_file_size(inner.apply(page))
    return ExtractionRule(f"size:{selector}", rule)


def text_file_size(label_regex: str = r"(?:\bDownload\s+)?\bSize\b:?\s*([^\n]+)") -> ExtractionRule:
    """File size following a label such as "Size:" in the page text."""
    compiled = re.compile(label_regex, re.IGNORECASE)

    def rule(page: PageContext) -> Optional[int]:
        match = compiled.search(page.text)
        return find_file_size(match.group(1)) if match else None
    return ExtractionRule(f"text-size:{label_regex}", rule)


def select_screenshots(
    selector: str,
    attr: str = "src",
    exclude: Tuple[str, ...] = (),
) -> ExtractionRule:
    """Up to MAX_SCREENSHOTS images; caption from alt text when present."""
    def rule(page: PageContext) -> List[Screenshot]:
        shots: List[Screenshot] = []
        for element in page.soup.select(selector):
            src = element.get(attr)
            if not src or any(token in src for token in exclude):
                continue
            caption = (element.get("alt") or "").strip() or f"Screenshot {len(shots) + 1}"
            shots.append(Screenshot(url=page.absolute(src), caption=caption))
            if len(shots) >= MAX_SCREENSHOTS:
                break
        return shots
    return ExtractionRule(f"screenshots:{selector}@{attr}", rule)


# =============================================================================
# EXTRACTOR BASE
# =============================================================================

class StoreExtractor:
    """
    Storefront extractor base class.

    Subclasses declare the URL patterns they handle, a fallback category and
    the ordered rule list for each field. ``extract`` never raises for bad
    or unexpected markup; it only yields more absent fields.
    """

    store_id: str = ""
    store_name: str = ""
    url_patterns: List[Pattern] = []
    pattern_hints: List[str] = []
    example_url: str = ""
    fallback_category: Optional[str] = "Games"

    # field name -> ordered rules
    field_rules: Dict[str, List[ExtractionRule]] = {}

    def __init__(self):
        self.logger = LayerLogger(f"extractor.{self.store_id}")

    def matches(self, url: str) -> bool:
        """True if any of this storefront's URL patterns matches."""
        return any(p.search(url) for p in self.url_patterns)

    def describe(self) -> str:
        """Short human description used in "unsupported URL" guidance."""
        return f"{self.store_name} ({self.pattern_hints[0]}...), e.g. {self.example_url}"

    def extract(self, html: str, source_url: str) -> ScrapedAppRecord:
        """
        Extract a best-effort app record from storefront HTML.

        Args:
            html: Raw page HTML (may be empty or malformed)
            source_url: The URL the HTML was fetched from

        Returns:
            ScrapedAppRecord with None for every field no rule could fill
        """
        self.logger.log_action("extract", "started", url=source_url)

        page = PageContext(
            url=source_url,
            html=html or "",
            soup=BeautifulSoup(html or "", "lxml"),
        )

        values: Dict[str, Any] = {}
        matched_rules: Dict[str, str] = {}
        for field_name, rules in self.field_rules.items():
            value, rule_name = self._first_match(field_name, rules, page)
            if rule_name:
                values[field_name] = value
                matched_rules[field_name] = rule_name

        fallback_fields: List[str] = []
        if "category" not in values and self.fallback_category:
            values["category"] = self.fallback_category
            fallback_fields.append("category")
            self.logger.log_fallback(
                from_source="category_rules",
                to_source="store_default",
                reason="no category rule matched",
                url=source_url,
                category=self.fallback_category,
            )

        record = self._build_record(values, page, fallback_fields, matched_rules)

        self.logger.log_extraction(
            store=self.store_name,
            fields_present=record.get_present_fields(),
            fields_missing=record.get_missing_fields(),
            url=source_url,
            matched_rules=matched_rules,
        )
        return record

    def _first_match(
        self,
        field_name: str,
        rules: List[ExtractionRule],
        page: PageContext,
    ) -> Tuple[Any, Optional[str]]:
        """Evaluate rules in order; return (value, rule name) of the first hit."""
        for rule in rules:
            try:
                value = rule.apply(page)
            except Exception as e:
                self.logger.log_error(
                    f"Rule {rule.name} failed: {e}",
                    error_type="rule_error",
                    field=field_name,
                    url=page.url,
                )
                continue
            if isinstance(value, str):
                value = value.strip()
            if not is_empty_value(value):
                return value, rule.name
        return None, None

    def _build_record(
        self,
        values: Dict[str, Any],
        page: PageContext,
        fallback_fields: List[str],
        matched_rules: Dict[str, str],
    ) -> ScrapedAppRecord:
        try:
            return ScrapedAppRecord(
                **values,
                source_url=page.url,
                source_store=self.store_name,
                fallback_fields=fallback_fields,
                matched_rules=matched_rules,
            )
        except ValueError as e:
            # A rule produced a value of the wrong shape; keep the rest
            self.logger.log_error(str(e), error_type="record_validation", url=page.url)
            safe = {k: v for k, v in values.items() if isinstance(v, str)}
            return ScrapedAppRecord(
                **safe,
                source_url=page.url,
                source_store=self.store_name,
                fallback_fields=fallback_fields,
                matched_rules={k: v for k, v in matched_rules.items() if k in safe},
            )
