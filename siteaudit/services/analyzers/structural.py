"""
Structural (on-page) analyzer.

Scores title, meta description, heading outline, images, links, favicon,
Open Graph and Twitter card markup of a single page. Pure: the parsed
document and the page URL are the only inputs.
"""

from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from siteaudit.services.analyzers.common import (
    ResultDocument,
    clamp_score,
    flatten_issues,
    weighted_score,
)

WEIGHTS = {
    "title": 0.20,
    "meta_description": 0.15,
    "headings": 0.15,
    "images": 0.10,
    "links": 0.10,
    "favicon": 0.05,
    "open_graph": 0.15,
    "twitter_card": 0.10,
}

TITLE_SEPARATORS = ("|", "-")
FAVICON_SELECTORS = (
    'link[rel="icon"]',
    'link[rel="shortcut icon"]',
    'link[rel="apple-touch-icon"]',
    'link[rel="apple-touch-icon-precomposed"]',
)
TWITTER_CARD_TYPES = ("summary", "summary_large_image", "app", "player")
NON_NAVIGABLE_PREFIXES = ("#", "mailto:", "tel:", "javascript:", "data:")


@dataclass(frozen=True)
class TextElementCheck(ResultDocument):
    exists: bool
    length: int
    text: str | None
    score: int
    issues: tuple[str, ...]


@dataclass(frozen=True)
class HeadingEntry(ResultDocument):
    tag: str
    text: str
    level: int


@dataclass(frozen=True)
class HeadingsCheck(ResultDocument):
    h1_count: int
    h2_count: int
    structure: tuple[HeadingEntry, ...]
    score: int
    issues: tuple[str, ...]


@dataclass(frozen=True)
class ImagesCheck(ResultDocument):
    total: int
    without_alt: int
    score: int
    issues: tuple[str, ...]
    skipped: bool = False


@dataclass(frozen=True)
class LinksCheck(ResultDocument):
    internal: int
    external: int
    broken: int
    score: int
    issues: tuple[str, ...]


@dataclass(frozen=True)
class FaviconCheck(ResultDocument):
    exists: bool
    url: str | None
    score: int
    issues: tuple[str, ...]


@dataclass(frozen=True)
class OpenGraphCheck(ResultDocument):
    title: str | None
    description: str | None
    image: str | None
    url: str | None
    type: str | None
    site_name: str | None
    image_width: str | None
    image_height: str | None
    image_alt: str | None
    locale: str | None
    score: int
    issues: tuple[str, ...]


@dataclass(frozen=True)
class TwitterCardCheck(ResultDocument):
    card: str | None
    title: str | None
    description: str | None
    image: str | None
    image_alt: str | None
    site: str | None
    creator: str | None
    score: int
    issues: tuple[str, ...]


@dataclass(frozen=True)
class StructuralAnalysis(ResultDocument):
    title: TextElementCheck
    meta_description: TextElementCheck
    headings: HeadingsCheck
    images: ImagesCheck
    links: LinksCheck
    favicon: FaviconCheck
    open_graph: OpenGraphCheck
    twitter_card: TwitterCardCheck
    score: int
    issues: tuple[str, ...]


def analyze_structural(
    soup: BeautifulSoup,
    url: str,
    include_images: bool = True,
) -> StructuralAnalysis:
    """Run every structural check and combine them into one weighted score.

    When `include_images` is False the image check is skipped and its weight
    is dropped from the overall score.
    """
    title = check_title(soup)
    meta_description = check_meta_description(soup)
    headings = check_headings(soup)
    images = check_images(soup) if include_images else ImagesCheck(0, 0, 100, (), skipped=True)
    links = check_links(soup, url)
    favicon = check_favicon(soup, url)
    open_graph = check_open_graph(soup)
    twitter_card = check_twitter_card(soup)

    checks = {
        "title": title,
        "meta_description": meta_description,
        "headings": headings,
        "images": images,
        "links": links,
        "favicon": favicon,
        "open_graph": open_graph,
        "twitter_card": twitter_card,
    }
    score = weighted_score(
        (check.score, WEIGHTS[name])
        for name, check in checks.items()
        if not (name == "images" and images.skipped)
    )

    return StructuralAnalysis(
        **checks,
        score=score,
        issues=flatten_issues(*(check.issues for check in checks.values())),
    )


def _meta(soup: BeautifulSoup, attr: str, value: str) -> str:
    tag = soup.find("meta", attrs={attr: value})
    if tag is None:
        return ""
    content = tag.get("content") or ""
    return content if isinstance(content, str) else " ".join(content)


def check_title(soup: BeautifulSoup) -> TextElementCheck:
    title_tag = soup.find("title")
    text = title_tag.get_text().strip() if title_tag else ""
    length = len(text)

    issues = []
    score = 100

    if not text:
        issues.append("Missing page title")
        score = 0
    else:
        if length < 30:
            issues.append("Title too short (recommended: 50-60 characters)")
            score -= 20
        if length > 60:
            issues.append("Title too long (recommended: 50-60 characters)")
            score -= 15
        if not any(sep in text for sep in TITLE_SEPARATORS):
            issues.append("Consider adding brand name to title")
            score -= 10

    return TextElementCheck(
        exists=bool(text),
        length=length,
        text=text or None,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def check_meta_description(soup: BeautifulSoup) -> TextElementCheck:
    description = _meta(soup, "name", "description")
    length = len(description)

    issues = []
    score = 100

    if not description:
        issues.append("Missing meta description")
        score = 0
    else:
        if length < 120:
            issues.append("Meta description too short (recommended: 150-160 characters)")
            score -= 20
        if length > 160:
            issues.append("Meta description too long (recommended: 150-160 characters)")
            score -= 15
        lowered = description.lower()
        if "click" not in lowered and "learn" not in lowered:
            issues.append("Consider adding a call-to-action")
            score -= 10

    return TextElementCheck(
        exists=bool(description),
        length=length,
        text=description or None,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def check_headings(soup: BeautifulSoup) -> HeadingsCheck:
    structure = tuple(
        HeadingEntry(tag=el.name, text=el.get_text().strip(), level=int(el.name[1]))
        for el in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
    )
    h1_count = sum(1 for h in structure if h.level == 1)
    h2_count = sum(1 for h in structure if h.level == 2)

    issues = []
    score = 100

    if h1_count == 0:
        issues.append("Missing H1 tag")
        score -= 30
    elif h1_count > 1:
        issues.append("Multiple H1 tags found (should have only one)")
        score -= 20

    if h2_count == 0:
        issues.append("No H2 tags found (recommended for content structure)")
        score -= 15

    # The outline starts at level 0; only the first skipped level is reported
    previous_level = 0
    for heading in structure:
        if heading.level > previous_level + 1:
            issues.append("Heading hierarchy not properly structured")
            score -= 10
            break
        previous_level = heading.level

    return HeadingsCheck(
        h1_count=h1_count,
        h2_count=h2_count,
        structure=structure,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def check_images(soup: BeautifulSoup) -> ImagesCheck:
    images = soup.find_all("img")
    total = len(images)
    without_alt = sum(1 for img in images if not (img.get("alt") or "").strip())

    issues = []
    score = 100.0

    if without_alt > 0:
        issues.append(f"{without_alt} image(s) missing alt text")
        score -= (without_alt / total) * 40

    if total == 0:
        issues.append("No images found (consider adding relevant images)")
        score -= 10

    return ImagesCheck(
        total=total,
        without_alt=without_alt,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def check_links(soup: BeautifulSoup, url: str) -> LinksCheck:
    host = (urlparse(url).hostname or "").lower()
    internal = 0
    external = 0

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(NON_NAVIGABLE_PREFIXES):
            continue
        try:
            target = urlparse(urljoin(url, href))
        except ValueError:
            # e.g. an unterminated IPv6 host
            continue
        if target.scheme not in ("http", "https"):
            continue
        if (target.hostname or "").lower() == host:
            internal += 1
        else:
            external += 1

    issues = []
    score = 100

    if internal == 0:
        issues.append("No internal links found")
        score -= 20

    if external == 0:
        issues.append("No external links found (consider linking to authoritative sources)")
        score -= 10

    return LinksCheck(
        internal=internal,
        external=external,
        broken=0,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def _absolute_icon_url(href: str, scheme: str, host: str) -> str:
    if href.startswith("//"):
        return f"{scheme}:{href}"
    if href.startswith("/"):
        return f"{scheme}://{host}{href}"
    if not href.startswith("http"):
        return f"{scheme}://{host}/{href}"
    return href


def check_favicon(soup: BeautifulSoup, url: str) -> FaviconCheck:
    issues = []
    score = 100
    favicon_url = None
    exists = False

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return FaviconCheck(
            exists=False,
            url=None,
            score=50,
            issues=("Error analyzing favicon",),
        )

    for selector in FAVICON_SELECTORS:
        link = soup.select_one(selector)
        href = (link.get("href") or "").strip() if link is not None else ""
        if href:
            favicon_url = _absolute_icon_url(href, parsed.scheme, parsed.netloc)
            exists = True
            break

    if not favicon_url:
        # Browsers fall back to /favicon.ico; existence is not verified
        favicon_url = f"{parsed.scheme}://{parsed.netloc}/favicon.ico"

    if not exists:
        issues.append("No favicon link tag found in HTML")
        issues.append('Consider adding <link rel="icon" href="/favicon.ico"> to <head>')
        score -= 20

    apple_touch_icons = soup.select('link[rel="apple-touch-icon"]')
    regular_icons = soup.select('link[rel="icon"]')

    if exists and not apple_touch_icons:
        issues.append("Consider adding Apple touch icons for better mobile support")
        score -= 10

    if exists and len(regular_icons) == 1 and not regular_icons[0].get("sizes"):
        issues.append("Consider specifying favicon sizes attribute")
        score -= 5

    return FaviconCheck(
        exists=exists,
        url=favicon_url,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def check_open_graph(soup: BeautifulSoup) -> OpenGraphCheck:
    og = {
        key: _meta(soup, "property", f"og:{key}")
        for key in (
            "title", "description", "image", "url", "type", "site_name",
            "image:width", "image:height", "image:alt", "locale",
        )
    }

    issues = []
    score = 100

    if not og["title"]:
        issues.append("Missing og:title meta tag")
        score -= 20
    elif len(og["title"]) > 60:
        issues.append("og:title too long (recommended: under 60 characters)")
        score -= 10

    if not og["description"]:
        issues.append("Missing og:description meta tag")
        score -= 20
    elif len(og["description"]) > 160:
        issues.append("og:description too long (recommended: under 160 characters)")
        score -= 10

    if not og["image"]:
        issues.append("Missing og:image meta tag")
        score -= 15
    else:
        if not og["image:width"] or not og["image:height"]:
            issues.append("Consider adding og:image:width and og:image:height")
            score -= 5
        if not og["image:alt"]:
            issues.append("Missing og:image:alt for accessibility")
            score -= 5

    if not og["url"]:
        issues.append("Missing og:url meta tag")
        score -= 10

    if not og["type"]:
        issues.append("Missing og:type meta tag")
        score -= 10

    if not og["site_name"]:
        issues.append("Consider adding og:site_name meta tag")
        score -= 5

    if not og["locale"]:
        issues.append("Consider adding og:locale meta tag")
        score -= 5

    return OpenGraphCheck(
        title=og["title"] or None,
        description=og["description"] or None,
        image=og["image"] or None,
        url=og["url"] or None,
        type=og["type"] or None,
        site_name=og["site_name"] or None,
        image_width=og["image:width"] or None,
        image_height=og["image:height"] or None,
        image_alt=og["image:alt"] or None,
        locale=og["locale"] or None,
        score=clamp_score(score),
        issues=tuple(issues),
    )


def check_twitter_card(soup: BeautifulSoup) -> TwitterCardCheck:
    tw = {
        key: _meta(soup, "name", f"twitter:{key}")
        for key in ("card", "title", "description", "image", "site", "creator", "image:alt")
    }

    issues = []
    score = 100

    if not tw["card"]:
        issues.append("Missing twitter:card meta tag")
        score -= 20
    elif tw["card"] not in TWITTER_CARD_TYPES:
        issues.append("Invalid twitter:card type (use: summary, summary_large_image, app, or player)")
        score -= 15

    if not tw["title"]:
        issues.append("Missing twitter:title meta tag")
        score -= 15
    elif len(tw["title"]) > 70:
        issues.append("twitter:title too long (recommended: under 70 characters)")
        score -= 10

    if not tw["description"]:
        issues.append("Missing twitter:description meta tag")
        score -= 15
    elif len(tw["description"]) > 200:
        issues.append("twitter:description too long (recommended: under 200 characters)")
        score -= 10

    if not tw["image"]:
        issues.append("Missing twitter:image meta tag")
        score -= 15
    elif not tw["image:alt"]:
        issues.append("Missing twitter:image:alt for accessibility")
        score -= 10

    if not tw["site"]:
        issues.append("Consider adding twitter:site meta tag")
        score -= 10

    if not tw["creator"]:
        issues.append("Consider adding twitter:creator meta tag")
        score -= 5

    return TwitterCardCheck(
        card=tw["card"] or None,
        title=tw["title"] or None,
        description=tw["description"] or None,
        image=tw["image"] or None,
        image_alt=tw["image:alt"] or None,
        site=tw["site"] or None,
        creator=tw["creator"] or None,
        score=clamp_score(score),
        issues=tuple(issues),
    )
