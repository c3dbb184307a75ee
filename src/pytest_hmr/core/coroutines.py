"""Coroutine driver of test scripts.

A test script is a generator yielding commands. The driver sends each
command to a processor, awaits its resolution, and resumes the
generator with the resolved value. A processing failure is thrown into
the generator at the `yield` point, which is the single place where a
script can recover from an error.
"""

import asyncio
import logging
from inspect import (
    GEN_CREATED,
    getgeneratorstate,
    isawaitable,
    isgenerator,
    isgeneratorfunction,
)
from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import UsageError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Generator

    type Processor = Callable[[Any], Awaitable[Any]]

logger = logging.getLogger(__name__)


async def consume(gen: 'Generator[Any, Any, Any]', process: 'Processor',
                  first_value: Any = None, *,  # noqa: ANN401
                  first_error: Exception | None = None) -> Any:  # noqa: ANN401
    """Drive a generator until it returns.

    Args:
        gen: Generator of commands.
        process: Coroutine function resolving a command.
        first_value: Value sent to resume a suspended generator.
        first_error: Error thrown into a suspended generator instead.

    Returns:
        The return value of the generator.
    """
    value = None if getgeneratorstate(gen) == GEN_CREATED else first_value
    error = first_error

    while True:
        try:
            command = gen.send(value) if error is None else gen.throw(error)
        except StopIteration as stop:
            return stop.value

        value, error = None, None
        if command is None:
            continue

        try:
            value = await process(command)
        except Exception as exc:  # noqa: BLE001
            logger.debug('throwing %r into %r', exc, gen)
            error = exc


async def consume_all(subs: 'list[Any] | tuple[Any, ...]', process: 'Processor') -> list[Any]:
    """Run subs concurrently.

    The first failure wins: the remaining subs are cancelled and the
    failure is raised.

    Args:
        subs: Subs to run.
        process: Coroutine function resolving commands.

    Returns:
        Results of the subs, in order.
    """
    tasks = [asyncio.ensure_future(consume_sub(sub, process)) for sub in subs]
    if not tasks:
        return []

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    for task in tasks:
        if not task.cancelled() and (error := task.exception()) is not None:
            raise error

    return [task.result() for task in tasks]


async def consume_sub(sub: Any, process: 'Processor') -> Any:  # noqa: ANN401
    """Run a sub: a step, a hook or a list of those.

    Args:
        sub: A list of subs run concurrently, a generator function or a
            generator driven with `consume`, or any other callable whose
            result is awaited when awaitable.
        process: Coroutine function resolving commands.

    Returns:
        The result of the sub.

    Raises:
        UsageError: If the sub is not runnable.
    """
    if isinstance(sub, (list, tuple)):
        return await consume_all(sub, process)

    if isgeneratorfunction(sub):
        return await consume(sub(), process)

    if isgenerator(sub):
        return await consume(sub, process)

    if callable(sub):
        result = sub()
        if isawaitable(result):
            result = await result
        return result

    raise UsageError(f'{sub!r} is not a sub')
