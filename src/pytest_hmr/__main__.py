"""CLI utilities to inspect HMR spec files.

    python -m pytest_hmr compile test_counter.hmr
    python -m pytest_hmr title test_counter.hmr
"""

from pathlib import Path
from re import Pattern
from typing import TYPE_CHECKING, Any

from click import ClickException, argument, echo, group, option
from click import Path as PathParam
from yaml import safe_dump

from pytest_hmr.errors import HMRError
from pytest_hmr.dsl import compile_spec, spec_title

if TYPE_CHECKING:
    from pytest_hmr.schema import CompiledSpec, Step

InputFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)


def _describe(value: Any) -> Any:  # noqa: ANN401
    """Render a runtime value for YAML output."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, Pattern):
        return f'/{value.pattern}/'

    if isinstance(value, (list, tuple)):
        return [_describe(item) for item in value]

    return f'<{getattr(value, "__qualname__", type(value).__name__)}>'


def _dump_step(step: 'Step') -> dict[str, Any]:
    return {step.kind: _describe(getattr(step, step.kind))}


def dump_spec(spec: 'CompiledSpec') -> dict[str, Any]:
    """Render a compiled spec as plain data.

    Args:
        spec: Compiled spec.

    Returns:
        A YAML-safe mapping with the title, the file content table and
        the expectations.
    """
    expects = {}
    for label, expectation in spec.expects.items():
        data: dict[str, Any] = {}
        if expectation.title:
            data['title'] = expectation.title
        if expectation.before is not None:
            data['before'] = _describe(expectation.before)
        data['steps'] = [_dump_step(step) for step in expectation.steps]
        if expectation.after is not None:
            data['after'] = _describe(expectation.after)
        expects[label] = data

    return {
        'title': spec.title,
        'files': spec.files,
        'expects': expects,
    }


@group(help='Command-line utilities to inspect HMR spec files.')
def cli() -> None:
    """Root CLI group for pytest-hmr tools."""
    return None


@cli.command(
    name='compile',
    help='Compile a spec file and print the result as YAML.',
)
@option(
    '--inline',
    is_flag=True,
    default=False,
    help='Compile an inline spec, without title.',
)
@argument('spec', type=InputFilepath)
def compile_command(spec: Path, inline: bool) -> None:  # noqa: FBT001
    """Compile a spec file.

    Args:
        spec: Path to the spec file.
        inline: Whether the spec has no title line.
    """
    try:
        compiled = compile_spec(
            spec.read_text(encoding='utf-8'),
            full=not inline,
            filename=str(spec),
        )

    except HMRError as base:
        raise ClickException(str(base)) from base

    echo(safe_dump(
        dump_spec(compiled),
        sort_keys=False,
        allow_unicode=True,
    ), nl=False)


@cli.command(
    name='title',
    help='Print the title of a spec file.',
)
@argument('spec', type=InputFilepath)
def print_title(spec: Path) -> None:
    """Print the title of a spec file.

    Args:
        spec: Path to the spec file.
    """
    try:
        echo(spec_title(spec.read_text(encoding='utf-8'), filename=str(spec)))

    except HMRError as base:
        raise ClickException(str(base)) from base


if __name__ == '__main__':
    cli()
