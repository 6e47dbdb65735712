"""Core proctor library exports."""

from proctor.lib.exec import Command, ExecutionResult, Invocation, RetryPolicy, retry_call
from proctor.lib.sinks import BufferSink, ConsoleSink

__all__ = [
    "BufferSink",
    "Command",
    "ConsoleSink",
    "ExecutionResult",
    "Invocation",
    "RetryPolicy",
    "retry_call",
]
