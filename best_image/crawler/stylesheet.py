# best_image/crawler/stylesheet.py
# Responsibility: Harvest background image references from CSS text.

import re
from typing import Iterable, List

import tinycss2

from best_image.errors import CssParseError

BACKGROUND_PROPERTIES = ("background", "background-image")
NESTED_AT_RULES = ("media", "supports", "document")
CSS_URL_RE = re.compile(r"""(?:\(['"]?)(.*?)(?:['"]?\))""")


def extract_background_urls(css_text: str) -> List[str]:
    """
    Parses a stylesheet and returns the url() arguments of every
    background / background-image declaration, in stylesheet order.

    Raises:
        CssParseError: If the stylesheet cannot be tokenized at all.
    """
    try:
        rules = tinycss2.parse_stylesheet(css_text, skip_comments=True, skip_whitespace=True)
        urls: List[str] = []
        _collect_from_rules(rules, urls)
        return urls
    except (TypeError, ValueError, AttributeError) as e:
        raise CssParseError(f"Parsing Error: {e}")


def _collect_from_rules(rules: Iterable, urls: List[str]) -> None:
    for rule in rules:
        if rule.type == "qualified-rule":
            _collect_from_declarations(rule.content, urls)
        elif rule.type == "at-rule" and rule.content is not None:
            if rule.lower_at_keyword in NESTED_AT_RULES:
                nested = tinycss2.parse_rule_list(rule.content, skip_comments=True, skip_whitespace=True)
                _collect_from_rules(nested, urls)
        # parse errors are recoverable, tinycss2 already skipped the broken rule


def _collect_from_declarations(content: list, urls: List[str]) -> None:
    declarations = tinycss2.parse_declaration_list(content, skip_comments=True, skip_whitespace=True)
    for item in declarations:
        if item.type != "declaration" or item.lower_name not in BACKGROUND_PROPERTIES:
            continue

        value = tinycss2.serialize(item.value).strip()
        if not value.startswith("url"):
            continue

        match = CSS_URL_RE.search(value)
        if match and match.group(1):
            urls.append(match.group(1))
