from certigest.export.sink import Delivery, ExportSink, ExportSinkError, LocalDirectorySink, MemorySink

__all__ = ["Delivery", "ExportSink", "ExportSinkError", "LocalDirectorySink", "MemorySink"]
