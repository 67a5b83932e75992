"""Classification layer - Clasificación de topics."""

from .topic_classifier import TopicClassifier, classify

__all__ = ["TopicClassifier", "classify"]
