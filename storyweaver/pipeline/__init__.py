"""
Story generation pipeline: orchestration, state projection, and persistence.
"""

from .orchestrator import ProgressCallback, StoryGenerationOrchestrator, StructurePlanner
from .projector import ProjectionListener, StoryProjector
from .store import CollectionStore, InMemoryCollectionStore, YamlCollectionStore

__all__ = [
    "CollectionStore",
    "InMemoryCollectionStore",
    "ProgressCallback",
    "ProjectionListener",
    "StoryGenerationOrchestrator",
    "StoryProjector",
    "StructurePlanner",
    "YamlCollectionStore",
]
