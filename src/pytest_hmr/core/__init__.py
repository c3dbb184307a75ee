"""Test execution engine: interpreter, expectations and console monitor."""

from .coroutines import consume, consume_all, consume_sub
from .environment import ConsoleMessage, Environment, Page
from .expect import consume_expects, flush_expects
from .interpreter import Interpreter, TestRunner, spec_script
from .monitor import ConsoleMonitor
from .registry import CommandRegistry

__all__ = (
    'CommandRegistry',
    'ConsoleMessage',
    'ConsoleMonitor',
    'Environment',
    'Interpreter',
    'Page',
    'TestRunner',
    'consume',
    'consume_all',
    'consume_expects',
    'consume_sub',
    'flush_expects',
    'spec_script',
)
