"""Classifier engine: the single entry point callers use."""

from linguard.engines.classifier.service import ClassificationService

__all__ = ["ClassificationService"]
