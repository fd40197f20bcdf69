"""URI template compilation for connection selection.

Templates are plain URLs with ``{name}`` or ``{name:regex}`` placeholders::

    https://{host}/team/{repo}
    https://git.example.com/{id:[0-9]+}

Literal text is escaped; a bare placeholder matches any run of characters
without ``/``; a custom regex is used verbatim. Anything may follow the
templated portion (``.git`` suffixes, sub-paths, query strings).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_VARIABLE_PATTERN = "[^/]*"

# trailing path or query string is not relevant for selection
TRAILING_PATTERN = ".*"

LEADING_FLAGS = re.compile(r"\(\?([aiLmsux]+)\)")


class MalformedTemplateError(ValueError):
    """Raised when a URI template cannot be compiled."""

    def __init__(self, template: str, reason: str) -> None:
        super().__init__(f"Malformed URI template {template!r}: {reason}")
        self.template = template
        self.reason = reason


@dataclass(frozen=True, slots=True)
class UriTemplate:
    """A compiled URI template."""

    template: str
    pattern: re.Pattern[str]
    variables: tuple[str, ...] = ()

    @property
    def is_exact(self) -> bool:
        """True when the template is a literal URL without placeholders."""

        return not self.variables

    def matches(self, url: str) -> bool:
        return self.pattern.fullmatch(url) is not None

    def match(self, url: str) -> dict[str, str] | None:
        """Return the captured placeholder values, or ``None`` if *url* does not match."""

        found = self.pattern.fullmatch(url)
        if found is None:
            return None
        return {name: found.group(_group_name(index)) for index, name in enumerate(self.variables)}


def compile_template(template: str) -> UriTemplate:
    """Compile *template* into an anchored pattern.

    Placeholder boundaries are found with a brace depth counter, so a custom
    regex may carry its own ``{m,n}`` quantifiers: ``{x:a{2}}`` closes at the
    last brace and captures ``a{2}``.
    """

    depth = 0
    parts: list[str] = []
    variables: list[str] = []
    buffer: list[str] = []

    for char in template:
        if char == "{":
            depth += 1
            if depth == 1:
                parts.append(_quote(buffer))
                buffer = []
                continue
        elif char == "}":
            if depth == 0:
                raise MalformedTemplateError(template, "'}' without a matching '{'")
            depth -= 1
            if depth == 0:
                name, regex = _split_placeholder(template, "".join(buffer))
                parts.append(f"(?P<{_group_name(len(variables))}>{regex})")
                variables.append(name)
                buffer = []
                continue
        buffer.append(char)

    if depth:
        raise MalformedTemplateError(template, "unclosed '{'")
    parts.append(_quote(buffer))
    parts.append(TRAILING_PATTERN)

    try:
        pattern = re.compile("".join(parts))
    except re.error as exc:
        raise MalformedTemplateError(template, f"invalid regular expression ({exc})") from exc
    return UriTemplate(
        template=template,
        pattern=pattern,
        variables=tuple(variables),
    )


def _split_placeholder(template: str, body: str) -> tuple[str, str]:
    name, sep, regex = body.partition(":")
    if not sep:
        return name, DEFAULT_VARIABLE_PATTERN
    if not regex:
        raise MalformedTemplateError(
            template, f"no custom regular expression specified after ':' in {body!r}"
        )
    return name, _scope_leading_flags(regex)


def _group_name(index: int) -> str:
    return f"_v{index}"


def _scope_leading_flags(regex: str) -> str:
    # "(?i)x" is only legal at the very start of a pattern; "(?i:x)" is legal anywhere.
    found = LEADING_FLAGS.match(regex)
    if found is None:
        return regex
    return f"(?{found.group(1)}:{regex[found.end():]})"


def _quote(buffer: list[str]) -> str:
    return re.escape("".join(buffer)) if buffer else ""


__all__ = [
    "DEFAULT_VARIABLE_PATTERN",
    "MalformedTemplateError",
    "UriTemplate",
    "compile_template",
]
