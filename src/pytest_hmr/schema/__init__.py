"""Immutable models of compiled expectations and commands.

Expectations are produced by the spec compiler and by imperative
registrations. Commands are yielded by test scripts and consumed once
by the interpreter.
"""

from .commands import (
    BaseCommand,
    BeforeLoadCommand,
    ChangeCommand,
    ConsoleIgnoreCommand,
    ConsoleWaitCommand,
    DebugCommand,
    DiscardCommand,
    EffectCommand,
    ExpectCommand,
    FlushCommand,
    HookCommand,
    InitCommand,
    InnerTextCommand,
    PageCommand,
    SetSpecCommand,
    SpecCommand,
    TemplatesCommand,
    WaitCommand,
)
from .expectations import CompiledSpec, Expectation, Step, StepKind, SubHandler

__all__ = (
    'BaseCommand',
    'BeforeLoadCommand',
    'ChangeCommand',
    'CompiledSpec',
    'ConsoleIgnoreCommand',
    'ConsoleWaitCommand',
    'DebugCommand',
    'DiscardCommand',
    'EffectCommand',
    'ExpectCommand',
    'Expectation',
    'FlushCommand',
    'HookCommand',
    'InitCommand',
    'InnerTextCommand',
    'PageCommand',
    'SetSpecCommand',
    'SpecCommand',
    'Step',
    'StepKind',
    'SubHandler',
    'TemplatesCommand',
    'WaitCommand',
)
