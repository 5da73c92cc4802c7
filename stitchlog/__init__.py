"""Stitch Log - keep track of knitting projects."""

__version__ = "0.1.0"
