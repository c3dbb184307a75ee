"""Pytest plugin and engine for hot module replacement tests.

The `pytest_hmr` package verifies the incremental behavior of a live
reloading application: given a sequence of source file edits, it
asserts that the rendered output evolves exactly as expected after each
edit, without unexpected console errors.

Key features:
- a compact spec format declaring conditional file variants and the
  HTML expected after each of them;
- test scripts written as generator functions yielding commands;
- an ordered queue of expectations asserted against the live page;
- a console monitor failing the test on unexpected page output.
"""

from .commands import before_load, change, cons, debug, init, inner_text, page, spec, templates, wait
from .helpers import (
    click,
    click_button,
    click_link,
    expect_no_page_error,
    expect_no_page_load,
    expect_page_error,
    expect_page_errors,
    expect_page_load,
    expect_page_loads,
    goto,
    goto_state,
)

__all__ = (
    'before_load',
    'change',
    'click',
    'click_button',
    'click_link',
    'cons',
    'debug',
    'expect_no_page_error',
    'expect_no_page_load',
    'expect_page_error',
    'expect_page_errors',
    'expect_page_load',
    'expect_page_loads',
    'goto',
    'goto_state',
    'init',
    'inner_text',
    'page',
    'spec',
    'templates',
    'wait',
)
