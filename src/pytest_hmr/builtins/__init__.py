"""Built-in commands."""

from pytest_hmr.extensions import Plugin

from . import console, page, specs

__all__ = (
    'plugin',
)

plugin = Plugin(name='builtins', commands=[
    specs.spec,
    specs.set_spec_,
    specs.expect,
    specs.before,
    specs.after,
    specs.flush,
    specs.discard,
    specs.init,
    specs.templates,
    specs.change,
    page.page,
    page.inner_text,
    page.before_load,
    page.effect,
    page.debug,
    page.wait,
    console.ignore_warnings,
    console.ignore_errors,
    console.wait,
])
