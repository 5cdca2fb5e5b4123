"""
Cellgate - REST gateway for a wide-column store.

Multi-row reads, row/cell models and their JSON, XML and protobuf encodings.
"""

__version__ = "1.0.0"
