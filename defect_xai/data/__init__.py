"""Defect dataset loading and sampling."""
