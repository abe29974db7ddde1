"""
StoryWeaver package exposing story planning, illustration, and the generation pipeline.
"""

from .errors import InvalidStorySettings, PlanningFailed, StoryNotFound, StoryWeaverError
from .illustration import IllustrationStage, ReplicateIllustrationRenderer
from .pipeline import (
    InMemoryCollectionStore,
    StoryGenerationOrchestrator,
    StoryProjector,
    YamlCollectionStore,
)
from .story import Story, StoryPage, StorySettings, StoryStructurePlanner

__all__ = [
    "IllustrationStage",
    "InMemoryCollectionStore",
    "InvalidStorySettings",
    "PlanningFailed",
    "ReplicateIllustrationRenderer",
    "Story",
    "StoryGenerationOrchestrator",
    "StoryNotFound",
    "StoryPage",
    "StoryProjector",
    "StorySettings",
    "StoryStructurePlanner",
    "StoryWeaverError",
    "YamlCollectionStore",
]
