"""nrdp2nagios: NRDP passive check ingestion and Nagios config generation."""

__version__ = "0.1.0"
