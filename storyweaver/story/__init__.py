"""
Story data model and structure planning.
"""

from .models import (
    AGE_GROUPS,
    ART_STYLES,
    DEFAULT_PAGE_COUNT,
    GENRES,
    MAX_PAGE_COUNT,
    MIN_PAGE_COUNT,
    PlannedPage,
    Story,
    StoryPage,
    StorySettings,
    StoryStructure,
)
from .planner import StoryStructurePlanner
from .prompting import StructurePrompt, build_structure_prompt

__all__ = [
    "AGE_GROUPS",
    "ART_STYLES",
    "DEFAULT_PAGE_COUNT",
    "GENRES",
    "MAX_PAGE_COUNT",
    "MIN_PAGE_COUNT",
    "PlannedPage",
    "Story",
    "StoryPage",
    "StorySettings",
    "StoryStructure",
    "StoryStructurePlanner",
    "StructurePrompt",
    "build_structure_prompt",
]
