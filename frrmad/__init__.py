"""OSPF anomaly detection, gauge export and a Unix-socket query server for FRRouting routers."""

__version__ = "0.1.0"