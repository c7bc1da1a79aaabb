"""Where results go: injected sinks, the run output directory, terminal summaries."""
#
# KEY MODULES:
# - sink.py: ProbeSink protocol + null / composite / console sinks
# - directory.py: .http transcripts, reproduce scripts, summary.json
# - summary.py: terminal tables and summaries per run mode
#
from .sink import CompositeSink, ConsoleSink, NullSink, ProbeSink
from .directory import DirectorySink, OutputDirectory, format_exchange, reproduce_script

__all__ = [
    "CompositeSink",
    "ConsoleSink",
    "NullSink",
    "ProbeSink",
    "DirectorySink",
    "OutputDirectory",
    "format_exchange",
    "reproduce_script",
]
