"""Built-in commands acting on the live page and on the test state."""

import asyncio
import logging
from inspect import isawaitable
from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import UsageError
from pytest_hmr.extensions import CommandHandler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pytest_hmr.schema import (
        BeforeLoadCommand,
        DebugCommand,
        EffectCommand,
        InnerTextCommand,
        PageCommand,
        WaitCommand,
    )
    from pytest_hmr.state import TestState

logger = logging.getLogger(__name__)

#: Expression reading the text of an element, `None` when there is none.
INNER_TEXT = 'el => el && el.innerText'


def resolve_path(obj: Any, path: 'Sequence[str]') -> tuple[Any, Any]:  # noqa: ANN401
    """Resolve an attribute path.

    Args:
        obj: Root object.
        path: Attribute names.

    Returns:
        A tuple of the target and its parent.

    Raises:
        UsageError: If an attribute does not exist.
    """
    parent = None
    target = obj

    for position, name in enumerate(path):
        parent = target
        try:
            target = getattr(parent, name)
        except AttributeError:
            dotted = '.'.join(path[:position + 1])
            raise UsageError(f'page.{dotted} does not exist') from None

    return target, parent


async def _run_page(state: 'TestState', command: 'PageCommand') -> Any:  # noqa: ANN401
    """Resolve a path against the page, calling the target if callable.

    Raises:
        UsageError: If arguments are passed to a non-callable target.
    """
    target, _ = resolve_path(state.page, command.path)

    if not callable(target):
        if command.args or command.kwargs:
            raise UsageError(
                f'page.{".".join(command.path)} is not a function: the call must '
                'have exactly 0 arguments to retrieve the object instance',
            )
        return target

    result = target(*command.args, **command.kwargs)
    if isawaitable(result):
        result = await result

    return result


async def _run_inner_text(state: 'TestState', command: 'InnerTextCommand') -> str | None:
    return await state.page.eval_on_selector(command.selector, INNER_TEXT)


def _init_before_load(state: 'TestState', command: 'BeforeLoadCommand') -> None:
    state.before_load = command.sub


def _run_effect(state: 'TestState', command: 'EffectCommand') -> Any:  # noqa: ANN401
    return command.effect(state)


def _debug(state: 'TestState', command: 'DebugCommand') -> 'TestState':  # noqa: ARG001
    logger.debug('debug: %r', state)

    return state


async def _wait(state: 'TestState', command: 'WaitCommand') -> Any:  # noqa: ANN401, ARG001
    """Sleep for the command delay, or await its awaitable.

    Raises:
        UsageError: If the operand can not be awaited.
    """
    if command.delay is not None:
        await asyncio.sleep(command.delay)
        return None

    what = command.awaitable
    if callable(what):
        what = what()

    if not isawaitable(what):
        raise UsageError(f'Unsupported wait operand: {command.awaitable!r}')

    return await what


page = CommandHandler(name='page', run=_run_page)
inner_text = CommandHandler(name='inner_text', run=_run_inner_text)
before_load = CommandHandler(name='before_load', init=_init_before_load)
effect = CommandHandler(name='effect', run=_run_effect)
debug = CommandHandler(name='debug', init=_debug, run=_debug)
wait = CommandHandler(name='wait', init=_wait, run=_wait)
