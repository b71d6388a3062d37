"""Score level sets.

An ordered collection of named score bands, always sorted ascending by
cutoff with display_order equal to the position. Sets are never edited in
place: every operation returns a new, re-sorted and re-indexed set.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence, Union, overload

from okr_dashboard.models import ScoreLevel

MIN_LEVELS = 2

NEW_LEVEL_NAME = "New Level"
NEW_LEVEL_SCORE = 4.0
NEW_LEVEL_COLOR = "#6c757d"

# (name, score_value, color) of the five levels every installation starts with
CANONICAL_LEVELS: tuple[tuple[str, float, str], ...] = (
    ("Below", 3.0, "#dc3545"),
    ("Meets", 4.25, "#ffc107"),
    ("Good", 4.5, "#5cb85c"),
    ("Very Good", 4.75, "#28a745"),
    ("Exceptional", 5.0, "#1e7b34"),
)


class ValidationError(ValueError):
    """Raised when an edit would leave a score level set unusable."""


def slug(name: str) -> str:
    """Normalize a level name the way the backend keys levels ("Very Good" -> "very_good")."""
    return "_".join(name.strip().lower().split())


def canonical_levels() -> list[ScoreLevel]:
    """Return a fresh list of the five default levels."""
    return [
        ScoreLevel(name=name, score_value=value, color=color, display_order=i)
        for i, (name, value, color) in enumerate(CANONICAL_LEVELS)
    ]


def _sorted_levels(levels: Iterable[ScoreLevel]) -> tuple[ScoreLevel, ...]:
    ordered = sorted(levels, key=lambda level: level.score_value)
    return tuple(
        level if level.display_order == i else level.model_copy(update={"display_order": i})
        for i, level in enumerate(ordered)
    )


class ScoreLevelSet:
    """Immutable, sorted sequence of ScoreLevel."""

    __slots__ = ("_levels",)

    def __init__(self, levels: Iterable[ScoreLevel] = ()) -> None:
        self._levels = _sorted_levels(levels)

    @classmethod
    def of(cls, levels: Union["ScoreLevelSet", Iterable[ScoreLevel], None]) -> "ScoreLevelSet":
        """Coerce a set, a plain sequence or None into a ScoreLevelSet."""
        if isinstance(levels, ScoreLevelSet):
            return levels
        return cls(levels or ())

    @classmethod
    def defaults(cls) -> "ScoreLevelSet":
        return cls(canonical_levels())

    # ── Sequence protocol ──

    def __len__(self) -> int:
        return len(self._levels)

    def __iter__(self) -> Iterator[ScoreLevel]:
        return iter(self._levels)

    @overload
    def __getitem__(self, index: int) -> ScoreLevel: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ScoreLevel, ...]: ...

    def __getitem__(self, index):
        return self._levels[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ScoreLevelSet):
            return self._levels == other._levels
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._levels)

    def __repr__(self) -> str:
        names = ", ".join(f"{lv.name}={lv.score_value}" for lv in self._levels)
        return f"ScoreLevelSet([{names}])"

    # ── Queries ──

    @property
    def levels(self) -> tuple[ScoreLevel, ...]:
        return self._levels

    def is_empty(self) -> bool:
        return not self._levels

    def effective(self) -> "ScoreLevelSet":
        """Return this set, or the canonical defaults when it is empty."""
        if self._levels:
            return self
        return ScoreLevelSet.defaults()

    @property
    def lowest(self) -> ScoreLevel:
        return self.effective()._levels[0]

    @property
    def highest(self) -> ScoreLevel:
        return self.effective()._levels[-1]

    @property
    def min_score(self) -> float:
        return self.lowest.score_value

    @property
    def max_score(self) -> float:
        return self.highest.score_value

    def find(self, name: str) -> Optional[ScoreLevel]:
        """Look up a level by display name or backend slug, ignoring case."""
        wanted = slug(name)
        for level in self._levels:
            if slug(level.name) == wanted:
                return level
        return None

    # ── Edits (each returns a new set) ──

    def ensure_sorted(self) -> "ScoreLevelSet":
        return ScoreLevelSet(self._levels)

    def add_level(
        self,
        name: str = NEW_LEVEL_NAME,
        score_value: float = NEW_LEVEL_SCORE,
        color: str = NEW_LEVEL_COLOR,
    ) -> "ScoreLevelSet":
        new_level = ScoreLevel(
            name=name,
            score_value=score_value,
            color=color,
            display_order=len(self._levels),
        )
        return ScoreLevelSet((*self._levels, new_level))

    def remove_level(self, index: int) -> "ScoreLevelSet":
        """Drop the level at ``index``.

        Raises:
            ValidationError: If fewer than two levels would remain.
            IndexError: If ``index`` is out of range.
        """
        if not -len(self._levels) <= index < len(self._levels):
            raise IndexError(f"No score level at position {index}")
        if len(self._levels) - 1 < MIN_LEVELS:
            raise ValidationError(f"A score level set must keep at least {MIN_LEVELS} levels")
        position = index % len(self._levels)
        return ScoreLevelSet(lv for i, lv in enumerate(self._levels) if i != position)

    def update_level(self, index: int, **changes: object) -> "ScoreLevelSet":
        """Return a set where the level at ``index`` has ``changes`` applied."""
        updated = list(self._levels)
        updated[index] = ScoreLevel.model_validate(
            {**updated[index].model_dump(), **changes}
        )
        return ScoreLevelSet(updated)

    def replace(self, levels: Sequence[ScoreLevel]) -> "ScoreLevelSet":
        return ScoreLevelSet(levels)

    def reset_to_defaults(self) -> "ScoreLevelSet":
        return ScoreLevelSet.defaults()
