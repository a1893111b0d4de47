"""Archives - query and tool-dispatch layer over an OpenTelemetry ClickHouse store."""

__version__ = "0.1.0"
