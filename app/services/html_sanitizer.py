"""
HTML sanitization for exported Google Docs.

Handles:
1. Allow-list filtering of tags (disallowed tags are unwrapped, text kept)
2. Removal of non-text tags with their content (script, style, ...)
3. Attribute filtering (style everywhere, a/img specific attributes)
4. URL scheme restriction (data, http, https, or relative)
5. Plain-text snippets for the post listing

clean_html is pure: the same input always yields the same output, and it
never raises for disallowed markup.
"""

import re
from bs4 import BeautifulSoup, Comment, Declaration, Doctype, ProcessingInstruction

ALLOWED_TAGS = frozenset([
    # Sections
    "address", "article", "aside", "footer", "header",
    "h1", "h2", "h3", "h4", "h5", "h6", "hgroup",
    "main", "nav", "section",
    # Block text
    "blockquote", "dd", "div", "dl", "dt", "figcaption", "figure",
    "hr", "li", "ol", "p", "pre", "ul",
    # Inline text
    "a", "abbr", "b", "bdi", "bdo", "br", "cite", "code", "data", "dfn",
    "em", "i", "kbd", "mark", "q", "rb", "rp", "rt", "rtc", "ruby",
    "s", "samp", "small", "span", "strong", "sub", "sup", "time", "u",
    "var", "wbr",
    # Tables
    "caption", "col", "colgroup", "table", "tbody", "td", "tfoot",
    "th", "thead", "tr",
    # Images (Docs exports inline images as data: or googleusercontent URLs)
    "img",
])

# Dropped together with everything inside them
NON_TEXT_TAGS = frozenset(["script", "style", "textarea", "option", "noscript", "title"])

GLOBAL_ATTRIBUTES = frozenset(["style"])

ALLOWED_ATTRIBUTES = {
    "a": frozenset(["href", "name", "target"]),
    "img": frozenset(["src", "alt", "title", "width", "height", "style"]),
}

URL_ATTRIBUTES = frozenset(["href", "src"])

ALLOWED_SCHEMES = frozenset(["data", "http", "https"])

# Control characters and whitespace browsers ignore inside a scheme ("java\tscript:")
_IGNORED_URL_CHARS = re.compile(r"[\x00-\x20\x7f]+")
_SCHEME = re.compile(r"^([a-z][a-z0-9+.\-]*):")

SNIPPET_LENGTH = 150


def is_allowed_url(value: str) -> bool:
    """
    Check a URL attribute value against the scheme allow-list.

    Relative and protocol-relative URLs carry no scheme and are allowed.
    """
    compact = _IGNORED_URL_CHARS.sub("", value).lower()
    match = _SCHEME.match(compact)
    if not match:
        return True
    return match.group(1) in ALLOWED_SCHEMES


def _filter_attributes(tag) -> None:
    allowed = GLOBAL_ATTRIBUTES | ALLOWED_ATTRIBUTES.get(tag.name, frozenset())
    kept = {}
    for name, value in tag.attrs.items():
        if name not in allowed:
            continue
        if isinstance(value, list):
            value = " ".join(value)
        if name in URL_ATTRIBUTES and not is_allowed_url(value):
            continue
        kept[name] = value
    tag.attrs = kept


def clean_html(raw_html: str) -> str:
    """
    Sanitize exported HTML down to the allow-listed subset.

    Args:
        raw_html: Raw HTML from the Drive export

    Returns:
        Sanitized HTML fragment (no html/head/body wrappers)
    """
    if not raw_html:
        return ""

    soup = BeautifulSoup(raw_html, "html.parser")

    # Comments, doctypes and processing instructions never survive
    for node in list(soup.descendants):
        if isinstance(node, (Comment, Declaration, Doctype, ProcessingInstruction)):
            node.extract()

    for tag in soup.find_all(sorted(NON_TEXT_TAGS)):
        if not tag.decomposed:
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.name in ALLOWED_TAGS:
            _filter_attributes(tag)
        else:
            tag.unwrap()

    return str(soup)


def html_to_snippet(html: str, length: int = SNIPPET_LENGTH) -> str:
    """
    Plain-text preview of a post for the listing.

    Returns:
        First `length` characters of the text followed by '...', or '' for empty content
    """
    if not html:
        return ""

    text = BeautifulSoup(html, "html.parser").get_text()
    return text[:length] + "..."
