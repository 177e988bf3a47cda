"""gatherer-mes: equipment hierarchy and classification core for a MES."""

__version__ = "0.1.0"
