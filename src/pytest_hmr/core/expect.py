"""Expectation engine.

Owns the queue of pending expectations. Expectations are asserted
strictly in queue order: activating a label asserts every expectation
queued before it first, each one after writing its file variants and
waiting for the live environment to settle.
"""

import logging
from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import ErrorContext, ErrorFormatter, HMREnvironmentError, HMRError
from pytest_hmr.html import assert_html, normalize_html, strip_prefix
from pytest_hmr.names import WILDCARD
from pytest_hmr.values import REMOVED

from .coroutines import consume_sub

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pytest_hmr.schema import Expectation
    from pytest_hmr.state import TestState

logger = logging.getLogger(__name__)

#: Expression reading the HTML of an element.
INNER_HTML = 'el => el.innerHTML'


def render_specs(state: 'TestState', label: str) -> dict[str, str]:
    """Render the files of a label variant.

    Files without a variant for the label fall back to their wildcard
    content; files with neither are left untouched.

    Args:
        state: Test state holding the file content table.
        label: Condition label.

    Returns:
        Contents by path.
    """
    files = {}

    for path, variants in state.specs.items():
        content = variants.get(label) or variants.get(WILDCARD)
        if content:
            files[path] = content

    return files


def render_changes(state: 'TestState', changes: 'Mapping[str, Any]') -> dict[str, str | None]:
    """Render explicit file changes.

    Values of templated paths are passed to their template.

    Args:
        state: Test state holding the templates.
        changes: Contents, or template arguments, by path.

    Returns:
        Contents by path, `None` for removed files.
    """
    files: dict[str, str | None] = {}

    for path, value in changes.items():
        if value is REMOVED:
            files[path] = None
        elif template := state.templates.get(path):
            files[path] = template(value)
        else:
            files[path] = value

    return files


async def write_files(state: 'TestState', files: 'Mapping[str, str | None]') -> None:
    """Write files and wait for the environment to settle.

    Raises:
        HMREnvironmentError: If the environment reports a failure.
    """
    logger.debug('writing %s', list(files))

    try:
        await state.environment.write_and_settle(state.page, files)

    except HMRError:
        raise

    except Exception as base:
        raise HMREnvironmentError(
            f'Failed to update files: {base}',
            context=ErrorContext(filename=state.filename, error=base, element=sorted(files)),
        ) from base


async def read_html(state: 'TestState') -> str:
    """Read the normalized HTML under test.

    The HTML of the focus marker is read when the page has one, the
    HTML of the application root otherwise. A configured prefix of the
    application root is asserted and stripped.

    Raises:
        AssertionError: If the application HTML prefix does not match.
    """
    page = state.page
    settings = state.settings

    selector = settings.app_root_selector
    focused = False
    if settings.focus_selector and await page.query_selector(settings.focus_selector) is not None:
        selector = settings.focus_selector
        focused = True

    contents = await page.eval_on_selector(selector, INNER_HTML)
    if not contents:
        return ''

    actual = normalize_html(contents)
    if settings.app_html_prefix and not focused:
        actual = strip_prefix(actual, normalize_html(settings.app_html_prefix))

    return actual


async def assert_expect(state: 'TestState', expectation: 'Expectation', label: str) -> None:
    """Assert an expectation: before hook, steps in order, after hook.

    Args:
        state: Test state.
        expectation: Expectation to assert.
        label: Label of the expectation, for error reporting.

    Raises:
        AssertionError: If a step fails, enriched with the label, the
            step and the compared values.
    """
    process = state.process_command

    step_num: int | None = None
    step_kind = 'before'
    element: Any = None

    try:
        if expectation.before is not None:
            await consume_sub(expectation.before, process)

        for step_num, step in enumerate(expectation.steps):
            step_kind = step.kind
            element = None

            if step.html is not None:
                actual = await read_html(state)
                element = {'expected': step.html, 'actual': actual}
                assert_html(actual, step.html)

            elif step.sub is not None:
                await consume_sub(step.sub, process)

            else:
                await consume_sub(step.function, process)

        step_num, step_kind, element = None, 'after', None
        if expectation.after is not None:
            await consume_sub(expectation.after, process)

    except AssertionError as base:
        message = 'Expectation failed'
        if expectation.title:
            message += f' ({expectation.title})'
        message += f': {base}'

        raise AssertionError(ErrorFormatter.format(message, ErrorContext(
            filename=state.filename,
            label=label,
            step_num=step_num,
            step_kind=step_kind,
            element=element,
        ))) from base


async def consume_expects(state: 'TestState', until_label: Any, *,  # noqa: ANN401
                          already_written: bool = False) -> str | None:
    """Assert pending expectations up to a label.

    Expectations are popped from the front of the queue until the
    popped label equals `until_label` (inclusive) or the queue is empty.

    Args:
        state: Test state.
        until_label: Last label to assert. `None` drains the queue.
        already_written: Whether the files were already written.

    Returns:
        The last asserted label, `None` if nothing was asserted.
    """
    remaining = state.remaining_expects
    if not remaining:
        return None

    if until_label is not None:
        until_label = str(until_label)

    last_label = None
    while remaining:
        label, expectation = remaining.popleft()
        last_label = label

        logger.debug('asserting %r (already_written=%s)', label, already_written)

        if not already_written:
            await write_files(state, render_specs(state, label))

        await assert_expect(state, expectation, label)

        if label == until_label:
            break

    return last_label


async def flush_expects(state: 'TestState') -> str | None:
    """Assert all the pending expectations."""
    return await consume_expects(state, None)
