"""Built-in commands registering specs, expectations and file changes.

Spec registrations only happen before the page is loaded. Their
expectations are merged by label: steps are appended and hooks are
replaced. The `change` command writes files against the live page,
asserting the pending expectations queued up to its label first.
"""

import logging
from collections.abc import Mapping
from re import Pattern
from typing import TYPE_CHECKING, Any

from pytest_hmr.core.expect import (
    consume_expects,
    flush_expects,
    render_changes,
    render_specs,
    write_files,
)
from pytest_hmr.errors import UsageError
from pytest_hmr.extensions import CommandHandler
from pytest_hmr.html import normalize_expectation
from pytest_hmr.schema import CompiledSpec, Expectation, Step
from pytest_hmr.dsl import compile_file, compile_source
from pytest_hmr.values import is_sub

if TYPE_CHECKING:
    from pytest_hmr.schema import (
        ChangeCommand,
        DiscardCommand,
        ExpectCommand,
        FlushCommand,
        HookCommand,
        InitCommand,
        SetSpecCommand,
        SpecCommand,
        TemplatesCommand,
    )
    from pytest_hmr.state import TestState

logger = logging.getLogger(__name__)


def parse_expect_step(expected: Any) -> Step:  # noqa: ANN401
    """Build a step from a raw expectation.

    Args:
        expected: A generator function or coroutine function (sub step),
            another callable (function step), an HTML string, a list of
            strings and regexes, a single regex, a mapping of step fields
            or a step.

    Returns:
        The step, with its HTML normalized.

    Raises:
        UsageError: If the expectation type is not supported.
    """
    if isinstance(expected, Step):
        step = expected

    elif is_sub(expected):
        step = Step(sub=expected)

    elif callable(expected):
        step = Step(function=expected)

    elif isinstance(expected, (str, list, tuple)):
        step = Step(html=list(expected) if isinstance(expected, tuple) else expected)

    elif isinstance(expected, Pattern):
        step = Step(html=[expected])

    elif isinstance(expected, Mapping):
        step = Step.model_validate(expected)

    else:
        raise UsageError(f'Invalid expect argument ({type(expected).__name__})')

    if step.html is not None:
        step = step.model_copy(update={'html': normalize_expectation(step.html)})

    return step


def merge_expect(state: 'TestState', label: str, expectation: Expectation) -> None:
    """Merge an expectation into the registered one of its label."""
    current = state.expects.get(label)
    if current is None:
        state.expects[label] = expectation
        return

    state.expects[label] = current.model_copy(update={
        'title': expectation.title or current.title,
        'before': expectation.before if expectation.before is not None else current.before,
        'after': expectation.after if expectation.after is not None else current.after,
        'steps': [*current.steps, *expectation.steps],
    })


def set_spec(state: 'TestState', spec: CompiledSpec) -> None:
    """Install a compiled spec into the state."""
    state.specs.update(spec.files)

    for label, expectation in spec.expects.items():
        merge_expect(state, label, expectation)

    logger.debug('spec installed (files=%s, labels=%s)', list(spec.files), list(spec.expects))


def _init_spec(state: 'TestState', command: 'SpecCommand') -> None:
    if command.source is not None:
        compiled = compile_source(command.source, command.values, filename=state.filename)

    else:
        compiled = CompiledSpec(files={
            path: compile_file(content, filename=state.filename) if isinstance(content, str) else content
            for path, content in (command.files or {}).items()
        })

    set_spec(state, compiled)


def _init_set_spec(state: 'TestState', command: 'SetSpecCommand') -> None:
    set_spec(state, command.spec)


def _init_expect(state: 'TestState', command: 'ExpectCommand') -> None:
    for label, expected in command.expects:
        current = state.expects.get(label) or Expectation()
        state.expects[label] = current.add_step(parse_expect_step(expected))


def _init_hook(state: 'TestState', command: 'HookCommand') -> None:
    hook = 'before' if command.type == 'spec.before' else 'after'
    current = state.expects.get(command.label) or Expectation()

    state.expects[command.label] = current.with_hook(hook, command.sub)


async def _run_flush(state: 'TestState', command: 'FlushCommand') -> None:  # noqa: ARG001
    await flush_expects(state)


def _run_discard(state: 'TestState', command: 'DiscardCommand') -> None:  # noqa: ARG001
    """Drop the pending expectations.

    The queue is emptied in place, so that a drain in flight stops.
    """
    if state.remaining_expects is not None:
        state.remaining_expects.clear()

    state.remaining_expects = None


def _init_init(state: 'TestState', command: 'InitCommand') -> None:
    """Set the initial files.

    A label selects the variant of the registered specs. A mapping gives
    the contents by path: callable contents are registered as templates
    and rendered with their default arguments.
    """
    inits = command.inits

    if isinstance(inits, str):
        if state.init_spec_label is not None:
            raise UsageError(f'init with a spec label (previous: {state.init_spec_label})')
        state.init_spec_label = inits
        state.inits.update(render_specs(state, inits))
        return

    files: dict[str, Any] = {}
    changes: dict[str, Any] = {}
    for path, content in inits.items():
        if callable(content):
            state.templates[path] = content
            files[path] = content()
        else:
            changes[path] = content

    files.update(render_changes(state, changes))
    state.inits.update(files)


def _templates(state: 'TestState', command: 'TemplatesCommand') -> None:
    state.templates.update(command.templates)


async def _run_change(state: 'TestState', command: 'ChangeCommand') -> None:
    """Write a label variant or some files.

    Pending expectations queued up to the label are asserted first, the
    drain writing the files of each label. A label that is not pending
    is written without assertion.
    """
    changes = command.changes

    if isinstance(changes, str):
        last_label = await consume_expects(state, changes)
        if last_label != changes:
            await write_files(state, render_specs(state, changes))
        return

    await write_files(state, render_changes(state, changes))


spec = CommandHandler(name='spec', init=_init_spec)
set_spec_ = CommandHandler(name='$$set_spec', init=_init_set_spec)
expect = CommandHandler(name='spec.expect', init=_init_expect)
before = CommandHandler(name='spec.before', init=_init_hook)
after = CommandHandler(name='spec.after', init=_init_hook)
flush = CommandHandler(name='spec.flush', run=_run_flush)
discard = CommandHandler(name='spec.discard', run=_run_discard)
init = CommandHandler(name='init', init=_init_init)
templates = CommandHandler(name='templates', init=_templates, run=_templates)
change = CommandHandler(name='change', run=_run_change)
