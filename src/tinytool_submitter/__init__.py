"""Tiny Tool Submitter - AI-assisted Tiny Tool Town submission helper."""

__version__ = "0.1.0"
