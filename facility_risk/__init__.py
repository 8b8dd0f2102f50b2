"""Facility risk scoring: CMS citation history turned into ranked compliance focus areas."""

__version__ = "0.1.0"
