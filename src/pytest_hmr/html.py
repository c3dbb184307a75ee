"""HTML normalization and matching.

Rendered HTML is compared as normalized strings rather than as DOM
trees. Normalization collapses newlines and repeated spaces and removes
whitespace that markup rendering considers insignificant (around tags),
leaving the content of `pre`, `script`, `style` and `textarea` elements
untouched.
"""

from re import Pattern
from re import compile as regexp
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pytest_hmr.values import HtmlExpectation, Matcher

_NEWLINES_PATTERN = regexp(r'\n+')
_SPACES_PATTERN = regexp(r' {2,}')
_TRIM_PATTERN = regexp(
    r'(<(pre|script|style|textarea)[\s\S]+?</\2)|(^|>)\s+|\s+(?=<|$)',
)


def normalize_html(html: str) -> str:
    """Normalize an HTML string for comparison.

    Args:
        html: Raw HTML, either expected or rendered.

    Returns:
        The normalized HTML.
    """
    result = _NEWLINES_PATTERN.sub(' ', html).strip()
    result = _TRIM_PATTERN.sub(
        lambda match: (match.group(1) or '') + (match.group(3) or ''),
        result,
    )

    return _SPACES_PATTERN.sub(' ', result)


def normalize_expectation(expected: 'HtmlExpectation') -> 'HtmlExpectation':
    """Normalize the string parts of an HTML expectation.

    Empty string tokens are dropped from token lists.

    Args:
        expected: An HTML string or a list of matcher tokens.

    Returns:
        The normalized expectation.

    Raises:
        TypeError: If the expectation is neither a string nor a list.
    """
    if isinstance(expected, str):
        return normalize_html(expected)

    if isinstance(expected, (list, tuple)):
        tokens: list[Matcher] = []
        for token in expected:
            if isinstance(token, str):
                token = normalize_html(token)  # noqa: PLW2901
                if not token:
                    continue
            elif not isinstance(token, Pattern):
                raise TypeError(f'{token!r} is not an HTML matcher')
            tokens.append(token)
        return tokens

    raise TypeError(f'{expected!r} is not normalizable')


def match_tokens(actual: str, tokens: 'Sequence[Matcher]') -> None:
    """Match an HTML string against a list of matcher tokens.

    The actual string is consumed from left to right with a cursor.
    Leading whitespace is skipped before each token, so that whitespace
    reintroduced by the renderer between matcher boundaries is tolerated.
    A literal token must equal the next substring of the same length; a
    regex token must match at the cursor and the cursor moves past the
    whole match. Only whitespace may remain once all tokens matched.

    Args:
        actual: Normalized rendered HTML.
        tokens: Literal strings and compiled regular expressions.

    Raises:
        AssertionError: If a token does not match.
    """
    rest = actual

    for position, token in enumerate(tokens):
        rest = rest.lstrip()
        if isinstance(token, str):
            found = rest[:len(token)]
            if found != token:
                raise AssertionError(
                    f'token {position}: expected {token!r} but found {found!r} '
                    f'in {actual!r}',
                )
            rest = rest[len(token):]
        else:
            match = token.match(rest)
            if match is None:
                raise AssertionError(
                    f'token {position}: /{token.pattern}/ does not match '
                    f'{rest!r} in {actual!r}',
                )
            rest = rest[match.end():]

    if rest.strip():
        raise AssertionError(f'unexpected trailing HTML {rest.strip()!r} in {actual!r}')


def assert_html(actual: str, expected: 'HtmlExpectation') -> None:
    """Assert rendered HTML against an expectation.

    Args:
        actual: Normalized rendered HTML.
        expected: A normalized string or a list of matcher tokens.

    Raises:
        AssertionError: If the HTML does not match.
    """
    if isinstance(expected, str):
        if actual != expected:
            raise AssertionError(f'expected {expected!r} but found {actual!r}')
        return

    match_tokens(actual, expected)


def strip_prefix(actual: str, prefix: str) -> str:
    """Assert and remove a fixed HTML prefix.

    Args:
        actual: Normalized rendered HTML.
        prefix: Expected prefix.

    Returns:
        The HTML following the prefix.

    Raises:
        AssertionError: If the HTML does not start with the prefix.
    """
    found = actual[:len(prefix)]
    if found != prefix:
        raise AssertionError(f'app HTML prefix: expected {prefix!r} but found {found!r}')

    return actual[len(prefix):]
