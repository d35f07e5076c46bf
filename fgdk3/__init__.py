"""Decoder for FGDK3 PRELOAD.DAT catalogs and their .ovl overlay segments."""

__version__ = "0.1.0"
