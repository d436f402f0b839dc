#!filepath: queue_eta/training/engines/model/__init__.py
"""
Concrete LearningEngine implementations.
"""

from .mlp_train_engine import MLPTrainEngine

__all__ = ["MLPTrainEngine"]
