import logging
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Comment
from markupsafe import Markup

logger = logging.getLogger(__name__)

SAFE_SCHEMES = {"http", "https", "mailto"}

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "div", "em", "i", "li", "ol", "p",
    "span", "strong", "u", "ul", "h1", "h2", "h3", "h4", "h5", "h6",
}
ALLOWED_ATTRS = {"a": {"href", "title"}}
DROPPED_TAGS = ["script", "style", "iframe", "object", "embed", "noscript", "template"]


def safe_url(url: object, fallback: str = "#") -> str:
    """Return the URL if it is relative or uses http(s)/mailto, else ``fallback``."""
    value = str(url or "").strip()
    if not value:
        return fallback
    if value == "#":
        return value
    try:
        scheme = urlsplit(value).scheme.lower()
    except ValueError:
        return fallback
    if scheme and scheme not in SAFE_SCHEMES:
        logger.debug(f"Rejected URL with scheme {scheme!r}")
        return fallback
    return value


def sanitize_rich_text(html: object) -> Markup:
    """Keep basic inline formatting; drop scripts, handlers and unsafe links."""
    soup = BeautifulSoup(str(html or ""), "html.parser")

    for tag in soup.find_all(DROPPED_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue
        allowed = ALLOWED_ATTRS.get(tag.name, set())
        for attr in list(tag.attrs):
            if attr not in allowed:
                del tag.attrs[attr]
        if tag.name == "a":
            tag["href"] = safe_url(tag.get("href"))

    return Markup(str(soup))
