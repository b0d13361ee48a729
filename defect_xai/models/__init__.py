"""Classifier construction and evaluation."""
