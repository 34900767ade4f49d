"""
Content-quality analyzer.

Readability (Flesch reading ease), keyword density, paragraph-level
duplication and an overall quality estimate for the visible body text.
"""

import copy
import re
from collections import Counter
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from siteaudit.services.analyzers.common import ResultDocument, clamp_score, round_half_up

NON_CONTENT_TAGS = ["script", "style", "nav", "header", "footer", "aside"]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

DUPLICATE_SIMILARITY_THRESHOLD = 0.85
DUPLICATE_PERCENTAGE_LIMIT = 10
TOP_KEYWORDS = 10

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_VOWEL_GROUPS = re.compile(r"[aeiouy]+")
_PUNCTUATION = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class DuplicateContentCheck(ResultDocument):
    percentage: float
    duplicate_pairs: int
    issues: tuple[str, ...] = ()


@dataclass(frozen=True)
class QualityFactors(ResultDocument):
    length: int
    uniqueness: int
    structure: int


@dataclass(frozen=True)
class ContentQuality(ResultDocument):
    score: int
    factors: QualityFactors


@dataclass(frozen=True)
class ContentAnalysis(ResultDocument):
    word_count: int
    readability_score: int
    keyword_density: dict[str, float] = field(hash=False)
    duplicate_content: DuplicateContentCheck
    content_quality: ContentQuality
    score: int
    issues: tuple[str, ...]


def count_syllables(word: str) -> int:
    """Approximate syllables: vowel groups, minus a silent trailing 'e', at least 1."""
    word = word.lower()
    syllables = len(_VOWEL_GROUPS.findall(word))
    if word.endswith("e") and syllables > 1:
        syllables -= 1
    return max(1, syllables)


def flesch_reading_ease(words: int, sentences: int, syllables: int) -> int:
    """Flesch reading ease, rounded and clamped to [0, 100]; 0 without words or sentences."""
    if words == 0 or sentences == 0:
        return 0
    score = 206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)
    return clamp_score(score)


def jaccard_similarity(first: str, second: str) -> float:
    """Jaccard index of the lowercase word sets of two strings."""
    set1 = set(first.lower().split())
    set2 = set(second.lower().split())
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


def keyword_density(text: str) -> dict[str, float]:
    """Top keywords (longer than 3 characters) as a percentage of all such words."""
    words = [w for w in _PUNCTUATION.sub("", text.lower()).split() if len(w) > 3]
    if not words:
        return {}
    total = len(words)
    return {
        word: round_half_up(frequency / total * 100, 2)
        for word, frequency in Counter(words).most_common(TOP_KEYWORDS)
    }


def check_duplicate_content(paragraphs: list[str]) -> DuplicateContentCheck:
    duplicate_pairs = 0
    for i, first in enumerate(paragraphs):
        for second in paragraphs[i + 1:]:
            if jaccard_similarity(first, second) > DUPLICATE_SIMILARITY_THRESHOLD:
                duplicate_pairs += 1

    percentage = duplicate_pairs / len(paragraphs) * 100 if paragraphs else 0.0
    issues = ()
    if percentage > DUPLICATE_PERCENTAGE_LIMIT:
        issues = ("High percentage of duplicate content detected",)

    return DuplicateContentCheck(
        percentage=round_half_up(percentage, 2),
        duplicate_pairs=duplicate_pairs,
        issues=issues,
    )


def assess_quality(words: list[str], heading_count: int, paragraph_count: int) -> ContentQuality:
    length = min(100.0, len(words) / 1000 * 100)
    uniqueness = len({w.lower() for w in words}) / len(words) * 100 if words else 0.0
    structure = min(100, heading_count * 10 + paragraph_count * 2)

    return ContentQuality(
        score=clamp_score((length + uniqueness + structure) / 3),
        factors=QualityFactors(
            length=clamp_score(length),
            uniqueness=clamp_score(uniqueness),
            structure=clamp_score(structure),
        ),
    )


def composite_score(word_count: int, readability: int, quality: int) -> int:
    score = 100
    if word_count < 300:
        score -= 30
    elif word_count < 500:
        score -= 15

    if readability < 40:
        score -= 25
    elif readability < 60:
        score -= 15

    return clamp_score((score + quality) / 2)


def analyze_content(soup: BeautifulSoup) -> ContentAnalysis:
    """Score the visible body text of a page.

    Works on a copy of `soup`; navigation, header, footer, aside, script and
    style elements are excluded from every measurement.
    """
    doc = copy.copy(soup)
    for element in doc.find_all(NON_CONTENT_TAGS):
        element.decompose()

    body = doc.body or doc
    text = " ".join(body.get_text(" ").split())
    words = text.split()
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    syllables = sum(count_syllables(w) for w in words)

    paragraph_tags = doc.find_all("p")
    paragraphs = [p.get_text().strip() for p in paragraph_tags]

    readability = flesch_reading_ease(len(words), len(sentences), syllables)
    duplicate_content = check_duplicate_content([p for p in paragraphs if p])
    quality = assess_quality(words, len(doc.find_all(HEADING_TAGS)), len(paragraph_tags))

    issues = []
    if len(words) < 300:
        issues.append("Content too short (recommended: 300+ words)")
    if readability < 60:
        issues.append("Content may be difficult to read")
    if quality.score < 70:
        issues.append("Content quality could be improved")
    issues.extend(duplicate_content.issues)

    return ContentAnalysis(
        word_count=len(words),
        readability_score=readability,
        keyword_density=keyword_density(text),
        duplicate_content=duplicate_content,
        content_quality=quality,
        score=composite_score(len(words), readability, quality.score),
        issues=tuple(issues),
    )
