"""Console display of render traces."""

from cria.display.trace import RichTraceSink

__all__ = ["RichTraceSink"]
