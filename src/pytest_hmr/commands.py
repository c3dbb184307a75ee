"""Public command constructors.

Test scripts are generator functions yielding the commands built here:

    def test_counter(hmr):
        def script():
            yield spec('''
                ---- App.svelte ----
                ::0 <h1>zero</h1>
                ::1 <h1>one</h1>
                ****
                ::0 <h1>zero</h1>
                ::1 <h1>one</h1>
            ''')
            yield init(0)
            yield change(1)
            text = yield inner_text('h1')
            assert text == 'one'

        hmr(script)
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import UsageError
from pytest_hmr.schema import (
    BeforeLoadCommand,
    ChangeCommand,
    ConsoleIgnoreCommand,
    ConsoleWaitCommand,
    DebugCommand,
    DiscardCommand,
    ExpectCommand,
    FlushCommand,
    HookCommand,
    InitCommand,
    InnerTextCommand,
    PageCommand,
    SpecCommand,
    TemplatesCommand,
    WaitCommand,
)
from pytest_hmr.values import REMOVED, to_source

if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_hmr.schema import SubHandler
    from pytest_hmr.schema.commands import IgnorePolicy


class SpecCommands:
    """Constructors of the spec commands.

    Calling the object registers a spec; its methods register
    expectations and hooks and control the pending queue.
    """

    def __call__(self, spec: Any) -> SpecCommand:  # noqa: ANN401
        """Register a spec.

        Args:
            spec: Inline spec (a string, a template string or a sequence
                mixing strings and values), or a mapping of file paths to
                their conditional content.
        """
        if isinstance(spec, Mapping):
            return SpecCommand(files=dict(spec))

        source, values = to_source(spec)

        return SpecCommand(source=source, values=values)

    def expect(self, label: Any, expected: Any = None) -> ExpectCommand:  # noqa: ANN401
        """Append a step to the expectation of a label.

        Either `expect(label, expected)` or `expect([(label, expected), ...])`.

        Raises:
            UsageError: If the expectation is missing.
        """
        if expected is None:
            if not isinstance(label, (list, tuple)):
                raise UsageError('spec.expect requires an expectation')
            return ExpectCommand(expects=[tuple(pair) for pair in label])

        return ExpectCommand(expects=[(label, expected)])

    def before(self, label: Any, sub: 'SubHandler') -> HookCommand:  # noqa: ANN401
        """Set the sub run before the steps of a label."""
        return HookCommand(type='spec.before', label=label, sub=sub)

    def after(self, label: Any, sub: 'SubHandler') -> HookCommand:  # noqa: ANN401
        """Set the sub run after the steps of a label."""
        return HookCommand(type='spec.after', label=label, sub=sub)

    def flush(self) -> FlushCommand:
        """Assert all the pending expectations."""
        return FlushCommand()

    def discard(self) -> DiscardCommand:
        """Drop all the pending expectations."""
        return DiscardCommand()


class ChangeCommands:
    """Constructor of the `change` command."""

    #: Content removing a file.
    rm = REMOVED

    def __call__(self, changes: Any) -> ChangeCommand:  # noqa: ANN401
        """Write a label variant, or files by path."""
        return ChangeCommand(changes=changes)


class PagePath:
    """Path into the live page.

    Attribute access extends the path, calling it makes a `page`
    command. Children are cached, so that `page.keyboard` is always the
    same object.

        yield page.click('button')
        html = yield page.content()
        keyboard = yield page.keyboard()
    """

    def __init__(self, path: tuple[str, ...] = ()) -> None:
        self._path = path
        self._children: dict[str, PagePath] = {}

    def __getattr__(self, name: str) -> 'PagePath':
        if name.startswith('_'):
            raise AttributeError(name)

        if (child := self._children.get(name)) is None:
            child = self._children[name] = PagePath((*self._path, name))

        return child

    def __call__(self, *args: Any, **kwargs: Any) -> PageCommand:  # noqa: ANN401
        return PageCommand(path=self._path, args=args, kwargs=kwargs)

    def __repr__(self) -> str:
        return '.'.join(('page', *self._path))


class ConsoleCommands:
    """Constructors of the console commands."""

    @staticmethod
    def _policy(matchers: tuple[Any, ...]) -> 'IgnorePolicy':
        if not matchers:
            return True
        if len(matchers) == 1 and isinstance(matchers[0], bool):
            return matchers[0]
        return list(matchers)

    def ignore_warnings(self, *matchers: Any) -> ConsoleIgnoreCommand:  # noqa: ANN401
        """Ignore console warnings.

        Without arguments all the warnings are ignored, `False` ignores
        none, texts and regexes extend the ignored messages.
        """
        return ConsoleIgnoreCommand(type='cons.ignore_warnings', ignore=self._policy(matchers))

    def ignore_errors(self, *matchers: Any) -> ConsoleIgnoreCommand:  # noqa: ANN401
        """Ignore console errors, like `ignore_warnings`."""
        return ConsoleIgnoreCommand(type='cons.ignore_errors', ignore=self._policy(matchers))

    def wait(self, *matchers: Any, timeout: float | None = None) -> ConsoleWaitCommand:  # noqa: ANN401
        """Wait for a console message.

        A leading number is the timeout in seconds.

        Args:
            matchers: Exact texts, regexes, or mappings with `type` and
                `text` keys.
            timeout: Timeout in seconds.
        """
        if matchers and isinstance(matchers[0], (int, float)) and not isinstance(matchers[0], bool):
            timeout, *rest = matchers
            matchers = tuple(rest)

        if timeout is None:
            return ConsoleWaitCommand(matchers=list(matchers))

        return ConsoleWaitCommand(timeout=timeout, matchers=list(matchers))


def init(inits: Any) -> InitCommand:  # noqa: ANN401
    """Set the initial files, or the label of the initial variant."""
    return InitCommand(inits=inits)


def templates(mapping: 'Mapping[str, Callable[..., Any]]') -> TemplatesCommand:
    """Register content templates by path."""
    return TemplatesCommand(templates=dict(mapping))


def wait(what: Any) -> WaitCommand:  # noqa: ANN401
    """Sleep for some seconds, or await an awaitable."""
    if isinstance(what, (int, float)) and not isinstance(what, bool):
        return WaitCommand(delay=what)

    return WaitCommand(awaitable=what)


def inner_text(selector: str) -> InnerTextCommand:
    """Read the inner text of the first element matching a selector."""
    return InnerTextCommand(selector=selector)


def debug() -> DebugCommand:
    """Get the test state."""
    return DebugCommand()


def before_load(sub: 'SubHandler') -> BeforeLoadCommand:
    """Run a sub before the page navigation."""
    return BeforeLoadCommand(sub=sub)


spec = SpecCommands()
change = ChangeCommands()
page = PagePath()
cons = ConsoleCommands()
