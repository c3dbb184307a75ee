"""Command interpreter of test scripts.

A test script goes through two phases:

- INIT: commands are resolved by their `init` handlers. They register
  specs, expectations, initial files and console policies. The first
  command without an `init` handler starts the run phase; a script that
  ends with registered expectations starts it too.
- RUN: the sources are reset to the initial files, the page is loaded,
  and the same script goes on with commands resolved by their `run`
  handlers against the live page. Once the script is over, pending
  expectations are flushed.

The run phase races the command flow against the console monitor and
the fail signal of the state: the first failure ends the test.
"""

import asyncio
import logging
from collections import deque
from inspect import isawaitable, isgenerator, isgeneratorfunction
from typing import TYPE_CHECKING, Any, Literal

from pytest_hmr.config import HmrSettings
from pytest_hmr.errors import ErrorContext, HMREnvironmentError, HMRError, UsageError
from pytest_hmr.schema import BaseCommand, EffectCommand, InitCommand, SetSpecCommand
from pytest_hmr.dsl import compile_spec
from pytest_hmr.state import TestState

from .coroutines import consume, consume_sub
from .expect import consume_expects, flush_expects
from .monitor import ConsoleMonitor
from .registry import CommandRegistry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Generator

    from pytest_hmr.schema import CompiledSpec

    from .environment import Environment, Page

    type Script = Callable[[], Generator[Any, Any, Any]] | Generator[Any, Any, Any]

logger = logging.getLogger(__name__)

type Phase = Literal['init', 'run']


def as_command(value: Any) -> BaseCommand:  # noqa: ANN401
    """Resolve a yielded value into a command.

    A bare callable is a state effect.

    Raises:
        UsageError: If the value is not a command.
    """
    if isinstance(value, BaseCommand):
        return value

    if callable(value):
        return EffectCommand(effect=value)

    raise UsageError(f'{value!r} is not a command')


def ensure_first_expect(state: TestState, label: str) -> None:
    """Check that the first pending expectation is the initial label.

    The pending expectations are discarded on mismatch, so that they
    are not flushed (and failing again) at the end of the test.

    Raises:
        UsageError: If the first pending label is another one.
    """
    remaining = state.remaining_expects
    if not remaining:
        return

    next_label, _ = remaining[0]
    if next_label != label:
        state.remaining_expects = None
        raise UsageError(f'Must init with first step (expected: {next_label}, found: {label})')


def spec_script(spec: 'CompiledSpec') -> 'Generator[Any, Any, None]':
    """Script running a full spec: install it, init with its first label."""
    yield SetSpecCommand(spec=spec)

    if spec.expects:
        yield InitCommand(inits=next(iter(spec.expects)))


class Interpreter:
    """Interpreter driving one test script against one test state."""

    def __init__(self, state: TestState, gen: 'Generator[Any, Any, Any]') -> None:
        """Initialize the interpreter.

        Args:
            state: Fresh test state.
            gen: Test script generator.
        """
        self.state = state
        self.gen = gen

    def processor(self, phase: Phase) -> 'Callable[[Any], Awaitable[Any]]':
        """Create the command processor of a phase.

        Args:
            phase: Execution phase.

        Returns:
            A coroutine function resolving yielded commands.
        """
        state = self.state

        async def process(value: Any) -> Any:  # noqa: ANN401
            command = as_command(value)
            handler = state.registry.get(command.type)
            logger.debug('command (%s) %s', phase, command.type)

            runner = getattr(handler, phase)
            if runner is None:
                if phase == 'init':
                    return await self.start(command)
                raise UsageError(f'Command {command.type!r} is only available before the page is loaded')

            result = runner(state, command)
            if isawaitable(result):
                result = await result
            return result

        return process

    async def reset(self) -> None:
        """Reset the sources and materialize the pending expectations.

        Raises:
            HMREnvironmentError: If the environment fails to reset.
        """
        state = self.state
        logger.debug('reset (%d initial files)', len(state.inits))

        try:
            await state.environment.reset(state.inits)

        except HMRError:
            raise

        except Exception as base:
            raise HMREnvironmentError(
                f'Failed to reset sources: {base}',
                context=ErrorContext(filename=state.filename, error=base, element=sorted(state.inits)),
            ) from base

        state.remaining_expects = deque(state.expects.items())

    async def start(self, first_command: BaseCommand | None = None) -> Any:  # noqa: ANN401
        """Switch to the run phase and run the rest of the script.

        Args:
            first_command: Command that triggered the transition, resolved
                first once the page is loaded.

        Raises:
            UsageError: If the run phase was already started.
        """
        state = self.state
        if state.started:
            raise UsageError('The run phase is already started')

        logger.debug('start (first_command=%s)', first_command and first_command.type)
        state.started = True

        process = self.processor('run')
        state.process_command = process

        monitor = ConsoleMonitor(state)
        state.monitor = monitor

        fail: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        state.bind_fail(fail)

        async def in_page(page: 'Page') -> None:
            state.page = page
            try:
                if state.init_spec_label is not None:
                    ensure_first_expect(state, state.init_spec_label)
                    await consume_expects(state, state.init_spec_label, already_written=True)

                first_value, first_error = None, None
                if first_command is not None:
                    try:
                        first_value = await process(first_command)
                    except Exception as exc:  # noqa: BLE001
                        first_error = exc

                await consume(self.gen, process, first_value, first_error=first_error)
                await flush_expects(state)

                for hook in state.post_hooks:
                    await consume_sub(hook, process)

            finally:
                monitor.close()
                if not fail.done():
                    fail.set_result(None)

        async def before_goto(page: 'Page') -> None:
            monitor.attach(page)
            if state.before_load is not None:
                state.page = page
                await consume_sub(state.before_load, process)

        async def load_page() -> None:
            await state.environment.load_page(state.page_url, in_page, before_goto)
            monitor.close()
            if not fail.done():
                fail.set_result(None)

        await self.reset()

        await self.race(
            asyncio.ensure_future(load_page()),
            monitor.future,
            fail,
        )

        logger.debug('start: done')

        return None

    @staticmethod
    async def race(*futures: 'asyncio.Future[Any]') -> None:
        """Wait for all futures, failing as soon as one of them fails.

        Futures still pending on failure are cancelled.
        """
        try:
            await asyncio.wait(futures, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [future for future in futures if not future.done()]
            for future in pending:
                future.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for future in futures:
            if not future.cancelled() and (error := future.exception()) is not None:
                raise error

    async def run(self) -> None:
        """Run the script through both phases."""
        await consume(self.gen, self.processor('init'))

        if not self.state.started and self.state.expects:
            logger.debug('script over with %d expectations', len(self.state.expects))
            await self.start()


class TestRunner:
    """Run test scripts and specs against a live environment."""

    __test__ = False

    def __init__(self, environment: 'Environment', *,
                 settings: HmrSettings | None = None,
                 registry: CommandRegistry | None = None) -> None:
        """Initialize the runner.

        Args:
            environment: Live environment collaborator.
            settings: Runtime settings, resolved from the environment
                variables and `hmr.yml` when omitted.
            registry: Command registry, builtin commands and installed
                plugins when omitted.
        """
        self.environment = environment
        self.settings = settings or HmrSettings()
        self.registry = registry or CommandRegistry.default(strict=self.settings.strict)

    def create_state(self, *, filename: str | None = None) -> TestState:
        """Create a fresh test state."""
        state = TestState(self.environment, settings=self.settings, registry=self.registry)
        state.filename = filename

        return state

    async def run(self, script: 'Script', *, filename: str | None = None) -> TestState:
        """Run a test script.

        Args:
            script: Generator function, or generator, yielding commands.
            filename: Optional name of the test, for error reporting.

        Returns:
            The final test state.

        Raises:
            UsageError: If the script is not a generator.
        """
        gen = script() if isgeneratorfunction(script) else script
        if not isgenerator(gen):
            raise UsageError(f'{script!r} is not a generator function')

        state = self.create_state(filename=filename)
        await Interpreter(state, gen).run()

        return state

    async def run_spec(self, spec: Any, *, filename: str | None = None) -> TestState:  # noqa: ANN401
        """Compile and run a full spec.

        Args:
            spec: Full spec, as a string, a template or a mixed sequence.
            filename: Optional name of the spec source.

        Returns:
            The final test state.
        """
        compiled = compile_spec(spec, full=True, filename=filename)

        return await self.run(spec_script(compiled), filename=filename)

    def __call__(self, script: 'Script', *, filename: str | None = None) -> TestState:
        """Run a test script in a new event loop."""
        return asyncio.run(self.run(script, filename=filename))

    def spec(self, spec: Any, *, filename: str | None = None) -> TestState:  # noqa: ANN401
        """Run a full spec in a new event loop."""
        return asyncio.run(self.run_spec(spec, filename=filename))
