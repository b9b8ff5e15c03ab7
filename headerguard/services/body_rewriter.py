"""Nonce injection into inline <script> and <style> elements.

Opening tags are located with an attribute-aware pattern and rewritten in
place; everything outside a matched opening tag is returned byte for byte.
No DOM is built, so doctype, whitespace and unrelated markup never change.

Limitations of matching tags by pattern instead of parsing the document:
- tags inside HTML comments or inside another script's text are rewritten too
- tags whose attributes are not separated by whitespace, or that have an
  unterminated quote, are not matched and stay as they are
"""

import html
import re

# Attribute: name, optionally followed by a double-quoted, single-quoted or
# unquoted value. Quoted values may contain ">". Names and unquoted values
# stop at "<", and all quantifiers are possessive so a failed match never
# backtracks; matching stays linear in the document size.
_ATTR = r"""\s++(?P<attr_name>[^\s"'<>/=]++)(?:\s*+=\s*+(?:"[^"]*+"|'[^']*+'|[^\s"'<>]++))?+"""
_ATTR_RE = re.compile(_ATTR)

_OPEN_TAG_PATTERN = r"<(?P<name>{tag})\b(?P<attrs>(?:{attr})*+)(?P<tail>\s*/?)>"


def _open_tag_re(tag: str) -> re.Pattern[str]:
    plain_attr = _ATTR.replace("?P<attr_name>", "?:")
    return re.compile(
        _OPEN_TAG_PATTERN.format(tag=tag, attr=plain_attr),
        re.IGNORECASE,
    )


class TagPatternRewriter:
    """Adds or replaces the nonce attribute of inline script/style tags.

    Tags with a ``src`` attribute reference an external resource and are
    left untouched.
    """

    _script_re = _open_tag_re("script")
    _style_re = _open_tag_re("style")

    def inject_into_scripts(self, document: str, nonce: str) -> str:
        return self._inject(self._script_re, document, nonce)

    def inject_into_styles(self, document: str, nonce: str) -> str:
        return self._inject(self._style_re, document, nonce)

    @staticmethod
    def _inject(pattern: re.Pattern[str], document: str, nonce: str) -> str:
        nonce_attr = f' nonce="{html.escape(nonce, quote=True)}"'

        def replace(match: re.Match[str]) -> str:
            kept: list[str] = []
            for attr in _ATTR_RE.finditer(match.group("attrs")):
                attr_name = attr.group("attr_name").lower()
                if attr_name == "src":
                    return match.group(0)
                if attr_name != "nonce":
                    kept.append(attr.group(0))
            return (
                f"<{match.group('name')}{''.join(kept)}{nonce_attr}"
                f"{match.group('tail')}>"
            )

        return pattern.sub(replace, document)


body_rewriter = TagPatternRewriter()
