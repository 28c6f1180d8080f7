"""Ingestion layer.

This package contains the adapters that turn connection bytes into
advertising reports: H4 packet reassembly, HCI event decoding, EIR parsing
and MAC address normalization.
"""

__all__: list[str] = []
