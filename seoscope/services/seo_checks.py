"""
seoscope/services/seo_checks.py
Document checks run against one fetched page:
  1. HTTPS
  2. Meta tags (+ Open Graph / Twitter Card fallbacks)
  3. Headings
  4. Images
  5. Content
  6. Mobile friendliness
  7. Schema markup
  8. Performance (pending integration)
  9. Hreflang
 10. Links

Every check is ``(ParsedDocument, FetchResult) -> CheckResult``, does no I/O
and never looks at another check's result.
"""
import json
import re
from typing import Any, Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from ..models import (
    CheckResult, CheckStatus, ContentInfo, HeadingsInfo, HreflangInfo,
    HreflangTag, HttpsInfo, ImageInfo, ImagesInfo, LinksInfo, MetaTagsInfo,
    MetaText, MobileInfo, OpenGraph, PerformanceInfo, SchemaBlock, SchemaInfo,
    TwitterCard,
)
from .document import ParsedDocument
from .fetcher import FetchResult

MIN_DIMENSION_FOR_CONTENT = 50  # px
SCHEMA_SNIPPET_CHARS = 200
NON_CONTENT_TAGS = (
    "script", "style", "noscript", "svg", "template", "iframe",
    "header", "footer", "nav", "aside",
    "form", "button", "input", "select", "textarea",
)

Check = Callable[[ParsedDocument, FetchResult], CheckResult]


def _result(name: str, value: Any, score: int, issues: List[str]) -> CheckResult:
    score = max(0, min(100, score))
    status = CheckStatus.OK if score >= 80 else CheckStatus.WARNING
    return CheckResult(name=name, status=status, value=value, details=issues, score=score)


def _meta_content(doc: ParsedDocument, selector: str) -> Optional[str]:
    value = doc.attr(doc.select_one(selector), "content")
    value = value.strip() if value else ""
    return value or None


# ═══════════════════════════════════════════════════════════════════════════════
# 1. HTTPS
# ═══════════════════════════════════════════════════════════════════════════════

def check_https(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    final_url = fetch.final_url or fetch.requested_url
    uses_https = urlparse(final_url).scheme.lower() == "https"
    issues = [] if uses_https else ["Page is not served over HTTPS"]
    return _result("https", HttpsInfo(uses_https=uses_https, final_url=final_url),
                   100 if uses_https else 40, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 2. META TAGS
# ═══════════════════════════════════════════════════════════════════════════════

def _charset(doc: ParsedDocument) -> Optional[str]:
    declared = doc.attr(doc.select_one("meta[charset]"), "charset")
    if declared:
        return declared.strip()
    http_equiv = _meta_content(doc, 'meta[http-equiv="content-type" i]')
    if http_equiv:
        m = re.search(r"charset=([\w\-]+)", http_equiv, re.IGNORECASE)
        if m:
            return m.group(1)
    return None


def check_meta_tags(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    issues: List[str] = []
    score = 100

    title = doc.text(doc.select_one("head > title") or doc.select_one("title")) or None
    description = _meta_content(doc, 'meta[name="description" i]')
    canonical = doc.attr(doc.select_one('link[rel~="canonical"]'), "href")
    canonical = canonical.strip() if canonical else None

    og_title = _meta_content(doc, 'meta[property="og:title"]')
    og_description = _meta_content(doc, 'meta[property="og:description"]')
    og_image = _meta_content(doc, 'meta[property="og:image"]')

    open_graph = OpenGraph(
        title=og_title or title,
        description=og_description or description,
        image=og_image,
        url=_meta_content(doc, 'meta[property="og:url"]') or canonical,
        type=_meta_content(doc, 'meta[property="og:type"]'),
    )
    twitter_card = TwitterCard(
        card=_meta_content(doc, 'meta[name="twitter:card"], meta[property="twitter:card"]'),
        title=_meta_content(doc, 'meta[name="twitter:title"], meta[property="twitter:title"]')
        or og_title or title,
        description=_meta_content(doc, 'meta[name="twitter:description"], meta[property="twitter:description"]')
        or og_description or description,
        image=_meta_content(doc, 'meta[name="twitter:image"], meta[property="twitter:image"]') or og_image,
    )

    info = MetaTagsInfo(
        title=MetaText(value=title, length=len(title or "")),
        description=MetaText(value=description, length=len(description or "")),
        keywords=_meta_content(doc, 'meta[name="keywords" i]'),
        viewport=_meta_content(doc, 'meta[name="viewport" i]'),
        canonical=canonical,
        robots=_meta_content(doc, 'meta[name="robots" i]'),
        charset=_charset(doc),
        open_graph=open_graph,
        twitter_card=twitter_card,
    )

    if not title:
        issues.append("Missing <title> tag")
        score -= 25
    elif info.title.length < 10:
        issues.append(f"Title too short ({info.title.length} chars, recommend 50–60)")
        score -= 5
    elif info.title.length > 70:
        issues.append(f"Title too long ({info.title.length} chars, recommend 50–60)")
        score -= 5

    if not description:
        issues.append("Missing meta description")
        score -= 20
    elif info.description.length < 50:
        issues.append(f"Meta description too short ({info.description.length} chars)")
        score -= 5
    elif info.description.length > 160:
        issues.append(f"Meta description too long ({info.description.length} chars)")
        score -= 3

    if not info.viewport:
        issues.append("Missing viewport meta tag")
        score -= 10
    if not canonical:
        issues.append("No canonical URL defined")
    if info.robots and "noindex" in info.robots.lower():
        issues.append("Meta robots tag contains noindex")
        score -= 20
    if not og_title:
        issues.append("Missing og:title (Open Graph)")
    if not og_image:
        issues.append("Missing og:image (Open Graph)")

    return _result("meta_tags", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 3. HEADINGS
# ═══════════════════════════════════════════════════════════════════════════════

def check_headings(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    issues: List[str] = []
    score = 100
    info = HeadingsInfo()

    for level in range(1, 7):
        tag = f"h{level}"
        texts = [doc.text(el) for el in doc.select_all(tag)]
        info.structure[tag] = texts
        info.counts[tag] = len(texts)
        info.total += len(texts)

    info.h1_content = info.structure["h1"]
    info.h1_count = len(info.h1_content)

    if info.h1_count == 0:
        issues.append("No <h1> tag found")
        score -= 30
    elif info.h1_count > 1:
        issues.append(f"Multiple <h1> tags found ({info.h1_count})")
        score -= 20
    if any(not t for t in info.h1_content):
        issues.append("Empty <h1> tag")
        score -= 10

    used = [lvl for lvl in range(1, 7) if info.counts[f"h{lvl}"]]
    for prev, cur in zip(used, used[1:]):
        if cur - prev > 1:
            issues.append(f"Heading levels skip from h{prev} to h{cur}")
            score -= 5
            break

    return _result("headings", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 4. IMAGES
# ═══════════════════════════════════════════════════════════════════════════════

def _dimension(attr_value: Optional[str], style: Optional[str], prop: str) -> Optional[int]:
    if attr_value:
        m = re.match(r"\s*(\d+)", attr_value)
        if m:
            return int(m.group(1))
    if style:
        m = re.search(rf"(?:^|;)\s*{prop}\s*:\s*(\d+)(?:\.\d+)?px", style, re.IGNORECASE)
        if m:
            return int(m.group(1))
    return None


def check_images(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    info = ImagesInfo()

    for el in doc.select_all("img"):
        src = doc.attr(el, "src")
        if not src:
            continue
        alt = doc.attr(el, "alt")
        style = doc.attr(el, "style")
        width = _dimension(doc.attr(el, "width"), style, "width")
        height = _dimension(doc.attr(el, "height"), style, "height")
        image = ImageInfo(
            src=src,
            alt=alt,
            width=width,
            height=height,
            missing_alt=alt is None,
            presentational_alt=alt is not None and not alt.strip(),
            likely_decorative=(
                (width is not None and width < MIN_DIMENSION_FOR_CONTENT)
                or (height is not None and height < MIN_DIMENSION_FOR_CONTENT)
            ),
        )
        info.images.append(image)
        info.missing_alt_count += image.missing_alt
        info.presentational_alt_count += image.presentational_alt
        info.likely_decorative_count += image.likely_decorative

    info.count = len(info.images)

    issues = []
    score = 100
    if info.missing_alt_count:
        issues.append(f"{info.missing_alt_count} image(s) missing alt attributes")
        score -= min(40, info.missing_alt_count * 5)
    # alt="" on a large image usually hides real content from crawlers
    hidden = [i for i in info.images if i.presentational_alt and not i.likely_decorative]
    if hidden:
        issues.append(f"{len(hidden)} non-decorative image(s) with empty alt text")
        score -= min(10, len(hidden) * 2)

    return _result("images", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 5. CONTENT
# ═══════════════════════════════════════════════════════════════════════════════

def check_content(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    text = doc.visible_text(exclude=NON_CONTENT_TAGS)
    text_length = len(text.encode("utf-8"))
    html_length = fetch.content_length or doc.raw_length
    ratio = round(text_length / html_length * 100, 2) if html_length else 0.0

    info = ContentInfo(
        word_count=len(text.split()),
        text_length=text_length,
        html_length=html_length,
        text_html_ratio=ratio,
    )

    issues = []
    score = 100
    if info.word_count < 100:
        issues.append(f"Very thin content — only {info.word_count} words detected")
        score -= 25
    elif info.word_count < 300:
        issues.append(f"Thin content — {info.word_count} words (recommend 300+)")
        score -= 10
    if ratio < 10:
        issues.append(f"Low text-to-HTML ratio ({ratio}%) — page is markup-heavy")
        score -= 10

    return _result("content", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 6. MOBILE FRIENDLINESS
# ═══════════════════════════════════════════════════════════════════════════════

_INITIAL_SCALE_ONE = re.compile(r"initial-scale=1(?:\.0*)?(?![\d.])")


def check_mobile_friendly(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    viewport = _meta_content(doc, 'meta[name="viewport" i]')
    compact = re.sub(r"\s+", "", viewport or "").lower()
    info = MobileInfo(
        has_viewport_meta=viewport is not None,
        viewport_content=viewport,
        has_width_device_width="width=device-width" in compact,
        has_initial_scale=bool(_INITIAL_SCALE_ONE.search(compact)),
        uses_flash=bool(doc.select_all(
            'object[type*="shockwave-flash"], embed[type*="shockwave-flash"], '
            'embed[src$=".swf" i], object[data$=".swf" i]'
        )),
    )

    issues = []
    score = 100
    if not info.has_viewport_meta:
        issues.append("Missing <meta name='viewport'> tag")
        score -= 50
    else:
        if not info.has_width_device_width:
            issues.append("Viewport meta tag missing width=device-width")
            score -= 20
        if not info.has_initial_scale:
            issues.append("Viewport meta tag missing initial-scale=1")
            score -= 10
    if info.uses_flash:
        issues.append("Page embeds Flash content, which mobile browsers cannot play")
        score -= 30

    return _result("mobile_friendly", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 7. SCHEMA MARKUP
# ═══════════════════════════════════════════════════════════════════════════════

def _schema_types(node: Any, found: List[str]) -> None:
    if isinstance(node, list):
        for item in node:
            _schema_types(item, found)
    elif isinstance(node, dict):
        kind = node.get("@type")
        for t in (kind if isinstance(kind, list) else [kind]):
            if isinstance(t, str) and t not in found:
                found.append(t)
        if "@graph" in node:
            _schema_types(node["@graph"], found)


def check_schema_markup(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    info = SchemaInfo()

    for el in doc.select_all('script[type="application/ld+json" i]'):
        raw = doc.raw_content(el).strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except ValueError as e:
            snippet = raw[:SCHEMA_SNIPPET_CHARS] + ("..." if len(raw) > SCHEMA_SNIPPET_CHARS else "")
            info.blocks.append(SchemaBlock(error=f"Failed to parse: {e}", snippet=snippet))
            info.json_ld_parse_errors += 1
            continue
        info.blocks.append(SchemaBlock(data=data))
        _schema_types(data, info.detected_types)

    info.json_ld_count = len(info.blocks)

    microdata = doc.select_all("[itemscope]")
    info.has_microdata = bool(microdata)
    for el in microdata:
        itemtype = doc.attr(el, "itemtype")
        if itemtype:
            name = itemtype.rstrip("/").rsplit("/", 1)[-1]
            if name and name not in info.detected_types:
                info.detected_types.append(name)

    parsed_blocks = info.json_ld_count - info.json_ld_parse_errors
    info.has_schema = parsed_blocks > 0 or info.has_microdata

    issues = []
    score = 100
    if not info.has_schema:
        issues.append("No structured data (JSON-LD or microdata) found")
        score -= 20
    elif not parsed_blocks:
        issues.append("Only microdata found; JSON-LD is the preferred format")
    if info.json_ld_parse_errors:
        issues.append(f"{info.json_ld_parse_errors} JSON-LD block(s) could not be parsed")
        score -= min(30, info.json_ld_parse_errors * 15)

    return _result("schema_markup", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 8. PERFORMANCE
# ═══════════════════════════════════════════════════════════════════════════════

def check_performance(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    """Core Web Vitals need a real browser or the PageSpeed API; not wired up yet."""
    return CheckResult(
        name="performance",
        status=CheckStatus.PENDING,
        value=PerformanceInfo(),
        details=["Performance metrics pending integration"],
    )


# ═══════════════════════════════════════════════════════════════════════════════
# 9. HREFLANG
# ═══════════════════════════════════════════════════════════════════════════════

def check_hreflang(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    info = HreflangInfo()
    for el in doc.select_all("link[hreflang]"):
        rel = (doc.attr(el, "rel") or "").lower().split()
        if "alternate" not in rel:
            continue
        lang = (doc.attr(el, "hreflang") or "").strip()
        info.tags.append(HreflangTag(lang=lang, href=doc.attr(el, "href")))

    info.has_hreflang = bool(info.tags)
    info.has_x_default = any(t.lang.lower() == "x-default" for t in info.tags)

    issues = []
    score = 100
    if info.has_hreflang and not info.has_x_default:
        issues.append("hreflang tags present but no x-default fallback")
        score -= 10
    missing_href = [t.lang for t in info.tags if not t.href]
    if missing_href:
        issues.append(f"hreflang tag(s) without href: {', '.join(missing_href)}")
        score -= 10

    return _result("hreflang", info, score, issues)


# ═══════════════════════════════════════════════════════════════════════════════
# 10. LINKS
# ═══════════════════════════════════════════════════════════════════════════════

def _site(netloc: str) -> str:
    netloc = netloc.lower()
    return netloc[4:] if netloc.startswith("www.") else netloc


def check_links(doc: ParsedDocument, fetch: FetchResult) -> CheckResult:
    base = fetch.final_url or fetch.requested_url
    base_site = _site(urlparse(base).netloc)
    info = LinksInfo()

    for el in doc.select_all("a[href]"):
        href = (doc.attr(el, "href") or "").strip()
        if not href or href.startswith(("mailto:", "tel:", "javascript:", "#")):
            continue
        target = urlparse(urljoin(base, href))
        if target.scheme not in ("http", "https"):
            continue
        info.total += 1
        if _site(target.netloc) == base_site:
            info.internal_count += 1
        else:
            info.external_count += 1
        if "nofollow" in (doc.attr(el, "rel") or "").lower().split():
            info.nofollow_count += 1

    issues = []
    score = 100
    if info.internal_count == 0:
        issues.append("No internal links found")
        score -= 20

    return _result("links", info, score, issues)


CHECKS: List[Tuple[str, Check]] = [
    ("https", check_https),
    ("meta_tags", check_meta_tags),
    ("headings", check_headings),
    ("images", check_images),
    ("content", check_content),
    ("mobile_friendly", check_mobile_friendly),
    ("schema_markup", check_schema_markup),
    ("performance", check_performance),
    ("hreflang", check_hreflang),
    ("links", check_links),
]
