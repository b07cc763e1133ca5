"""Processing layer - Note-state preprocessing.

This layer turns raw note/velocity state into the weighted pitch-class
view the inference layer works on:
- Role classification (bass, harmony, melody, mixed)
- Velocity weighting with register boosts
- Melody filtering out of the harmonic mask
"""

from .velocity import (
    NoteRole,
    VelocityConfig,
    VelocityWeights,
    VelocityDistribution,
    VelocityClassifier,
)

__all__ = [
    "NoteRole",
    "VelocityConfig",
    "VelocityWeights",
    "VelocityDistribution",
    "VelocityClassifier",
]
