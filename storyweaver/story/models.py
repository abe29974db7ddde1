"""
Structured representations of story settings, planned structures, and stories.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from storyweaver.errors import InvalidStorySettings

GENRES = (
    "Fantasy",
    "Sci-Fi",
    "Adventure",
    "Fairy Tale",
    "Mystery",
    "Educational",
    "Bedtime Story",
)

AGE_GROUPS = (
    "Toddler (1-3)",
    "Preschool (3-5)",
    "Early Reader (5-8)",
    "Pre-Teen (9-12)",
    "Young Adult",
)

ART_STYLES = (
    "Watercolor",
    "Cartoon",
    "Pixel Art",
    "3D Render",
    "Oil Painting",
    "Sketch",
    "Anime",
    "Storybook Illustration",
)

MIN_PAGE_COUNT = 3
MAX_PAGE_COUNT = 10
DEFAULT_PAGE_COUNT = 5


def _coerce_required_str(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    raise InvalidStorySettings(f"Story settings must include a non-empty '{keys[0]}' field.")


def _coerce_optional_str(value: Any) -> str | None:
    if value is None:
        return None

    text = str(value).strip()
    return text or None


def _coerce_page_count(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_PAGE_COUNT

    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidStorySettings(
            f"Expected an integer-compatible value for page_count, got {value!r}"
        ) from exc


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid created_at timestamp: {value!r}") from exc
    else:
        raise ValueError("Story payload must include a 'created_at' timestamp.")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class StorySettings:
    """
    Creation request gathered from the story wizard.

    Attributes
    ----------
    topic:
        Free-form idea the story should be about.
    genre:
        Genre tag, usually one of :data:`GENRES`.
    age_group:
        Target audience tag, usually one of :data:`AGE_GROUPS`.
    art_style:
        Illustration style tag, usually one of :data:`ART_STYLES`.
    page_count:
        Number of pages requested from the planner.
    """

    topic: str
    genre: str
    age_group: str
    art_style: str
    page_count: int = DEFAULT_PAGE_COUNT

    def __post_init__(self) -> None:
        for name in ("topic", "genre", "age_group", "art_style"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidStorySettings(f"'{name}' must be a non-empty string.")

        if isinstance(self.page_count, bool) or not isinstance(self.page_count, int):
            raise InvalidStorySettings("'page_count' must be an integer.")

        if not MIN_PAGE_COUNT <= self.page_count <= MAX_PAGE_COUNT:
            raise InvalidStorySettings(
                f"page_count must fall between {MIN_PAGE_COUNT} and {MAX_PAGE_COUNT}, "
                f"received {self.page_count}."
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StorySettings":
        """
        Build settings from a dict-like object, accepting camelCase wizard keys.
        """
        return cls(
            topic=_coerce_required_str(data, "topic"),
            genre=_coerce_required_str(data, "genre"),
            age_group=_coerce_required_str(data, "age_group", "ageGroup", "target_age"),
            art_style=_coerce_required_str(data, "art_style", "artStyle"),
            page_count=_coerce_page_count(
                data.get("page_count", data.get("pageCount"))
            ),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "genre": self.genre,
            "age_group": self.age_group,
            "art_style": self.art_style,
            "page_count": self.page_count,
        }


@dataclass(frozen=True)
class PlannedPage:
    """A page skeleton produced by planning: text plus the prompt to illustrate it."""

    page_number: int
    text: str
    image_prompt: str


@dataclass(frozen=True)
class StoryStructure:
    """
    Planning output: a titled, paginated narrative skeleton.
    """

    title: str
    description: str
    pages: tuple[PlannedPage, ...]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "StoryStructure":
        """
        Validate and convert a planner JSON payload.

        Raises
        ------
        ValueError
            If the title or pages are missing, a page is incomplete, or page
            numbers are not contiguous from 1.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("Story structure must be a mapping.")

        title = _coerce_optional_str(payload.get("title"))
        if not title:
            raise ValueError("Story structure is missing a title.")

        raw_pages = payload.get("pages")
        if not isinstance(raw_pages, list) or not raw_pages:
            raise ValueError("Story structure must contain a non-empty 'pages' list.")

        pages: list[PlannedPage] = []
        for entry in raw_pages:
            try:
                number = int(entry.get("page_number", entry.get("pageNumber")))
                text = str(entry["text"]).strip()
                image_prompt = str(
                    entry.get("image_prompt") or entry.get("imagePrompt") or ""
                ).strip()
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"Invalid page payload: {entry}") from exc

            if not text or not image_prompt:
                raise ValueError(f"Page {number} is missing text or image_prompt content.")

            pages.append(PlannedPage(page_number=number, text=text, image_prompt=image_prompt))

        for expected, page in enumerate(pages, start=1):
            if page.page_number != expected:
                raise ValueError("Page numbers must be sequential starting from 1.")

        return cls(
            title=title,
            description=_coerce_optional_str(payload.get("description")) or "",
            pages=tuple(pages),
        )


@dataclass(frozen=True)
class StoryPage:
    """
    A single page of a story.

    ``is_loading_image`` stays true until the illustration attempt for the page
    settles, at which point ``image_url`` holds the real or placeholder image.
    """

    page_number: int
    text: str
    image_prompt: str
    image_url: str | None = None
    is_loading_image: bool = False

    @classmethod
    def pending(cls, planned: PlannedPage) -> "StoryPage":
        return cls(
            page_number=planned.page_number,
            text=planned.text,
            image_prompt=planned.image_prompt,
            image_url=None,
            is_loading_image=True,
        )

    def mark_illustrated(self, image_url: str) -> "StoryPage":
        if not image_url:
            raise ValueError("image_url must be a non-empty string.")
        return replace(self, image_url=image_url, is_loading_image=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "text": self.text,
            "image_prompt": self.image_prompt,
            "image_url": self.image_url,
            "is_loading_image": self.is_loading_image,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StoryPage":
        try:
            page_number = int(payload["page_number"])
            text = str(payload["text"]).strip()
            image_prompt = str(payload.get("image_prompt", "")).strip()
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid page entry: {payload}") from exc

        return cls(
            page_number=page_number,
            text=text,
            image_prompt=image_prompt,
            image_url=_coerce_optional_str(payload.get("image_url")),
            is_loading_image=bool(payload.get("is_loading_image", False)),
        )


@dataclass(frozen=True)
class Story:
    """
    The Story Aggregate: one generated story and its ordered pages.

    Instances are immutable; every change yields a new ``Story`` so that a
    projection always swaps a whole value.
    """

    id: str
    title: str
    description: str
    genre: str
    target_age: str
    art_style: str
    created_at: datetime
    pages: tuple[StoryPage, ...] = field(default_factory=tuple)
    is_public: bool = False
    cover_image: str | None = None

    @classmethod
    def from_structure(
        cls,
        structure: StoryStructure,
        settings: StorySettings,
        *,
        story_id: str | None = None,
        created_at: datetime | None = None,
    ) -> "Story":
        """
        Construct a freshly planned story with every page pending illustration.
        """
        return cls(
            id=story_id or uuid.uuid4().hex,
            title=structure.title,
            description=structure.description,
            genre=settings.genre,
            target_age=settings.age_group,
            art_style=settings.art_style,
            created_at=created_at or datetime.now(timezone.utc),
            pages=tuple(StoryPage.pending(page) for page in structure.pages),
        )

    @property
    def is_illustrating(self) -> bool:
        return any(page.is_loading_image for page in self.pages)

    def with_page(self, page_index: int, page: StoryPage) -> "Story":
        if not 0 <= page_index < len(self.pages):
            raise IndexError(
                f"Page index {page_index} is out of range for a {len(self.pages)}-page story."
            )
        pages = list(self.pages)
        pages[page_index] = page
        return replace(self, pages=tuple(pages))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "genre": self.genre,
            "target_age": self.target_age,
            "art_style": self.art_style,
            "created_at": self.created_at.isoformat(),
            "is_public": self.is_public,
            "cover_image": self.cover_image,
            "pages": [page.to_dict() for page in self.pages],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Story":
        if not isinstance(payload, Mapping):
            raise ValueError("Story payload must be a mapping.")
        if not payload.get("id"):
            raise ValueError("Story payload must include 'id'.")

        pages_payload: Iterable[Mapping[str, Any]] = payload.get("pages") or []
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title", "")).strip(),
            description=str(payload.get("description", "")).strip(),
            genre=str(payload.get("genre", "")).strip(),
            target_age=str(payload.get("target_age", "")).strip(),
            art_style=str(payload.get("art_style", "")).strip(),
            created_at=_parse_timestamp(payload.get("created_at")),
            pages=tuple(StoryPage.from_dict(entry) for entry in pages_payload),
            is_public=bool(payload.get("is_public", False)),
            cover_image=_coerce_optional_str(payload.get("cover_image")),
        )
