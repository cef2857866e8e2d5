"""
Survey catalog: question bank, gifts, ministries and scoring tables.

The catalog is packaged JSON validated into immutable pydantic models. The
scoring engine only ever reads it, so one instance can be shared across
requests and a substitute can be passed in tests.
"""
import json
from pathlib import Path
from typing import Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Axis -> (positive pole, negative pole, middle bucket)
TRAIT_POLES: Dict[str, Tuple[str, str, str]] = {
    "introvert_extrovert": ("extrovert", "introvert", "ambivert"),
    "people_tasks": ("people-focused", "task-focused", "balanced"),
    "detail_big_picture": ("big-picture", "detail-oriented", "balanced"),
    "structured_flexible": ("flexible", "structured", "balanced"),
}
TRAIT_AXES: Tuple[str, ...] = tuple(TRAIT_POLES)

QuestionType = Literal["likert", "yes-no", "multiple-choice"]


class CatalogError(Exception):
    """Raised when the packaged survey data is missing or inconsistent."""


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class QuestionOption(_Frozen):
    value: Union[int, str]
    label: str


class Section(_Frozen):
    id: int
    title: str
    description: str = ""


class Question(_Frozen):
    id: str = Field(..., min_length=1)
    section: int
    type: QuestionType
    text: str
    options: Tuple[QuestionOption, ...] = ()
    help_text: Optional[str] = None
    gift_weights: Dict[str, float] = Field(default_factory=dict)
    personality_weights: Dict[str, float] = Field(default_factory=dict)
    ministry_weights: Dict[str, float] = Field(default_factory=dict)
    skill_verification: bool = False


class Gift(_Frozen):
    id: str
    name: str
    description: str
    biblical_reference: str = ""

    @property
    def short_name(self) -> str:
        """'Administration / Organization' -> 'Administration'."""
        return self.name.split(" /")[0]


class Ministry(_Frozen):
    id: str
    name: str
    category: str
    description: str = ""
    role_details: str = ""
    requires_skill_verification: bool = False


class PersonalityType(_Frozen):
    name: str
    traits: Tuple[str, ...] = ()
    description: str = ""


class PersonalityBonus(_Frozen):
    axis: str
    value: str
    bonuses: Dict[str, float]


class ScoringRules(_Frozen):
    top_gift_count: int = 5
    gift_bonus_factor: float = 0.5
    primary_count: int = 5
    primary_threshold: float = 0.3
    growth_pathway_threshold: float = 0.5
    gift_ministries: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    personality_bonuses: Tuple[PersonalityBonus, ...] = ()


class ScoringCatalog(_Frozen):
    version: str = "1.0"
    sections: Tuple[Section, ...] = ()
    likert_options: Tuple[QuestionOption, ...] = ()
    questions: Tuple[Question, ...]
    gifts: Tuple[Gift, ...]
    ministries: Tuple[Ministry, ...]
    personality_types: Tuple[PersonalityType, ...] = ()
    rules: ScoringRules = ScoringRules()

    @model_validator(mode="after")
    def check_references(self) -> "ScoringCatalog":
        gift_ids = {g.id for g in self.gifts}
        ministry_ids = {m.id for m in self.ministries}
        question_ids = [q.id for q in self.questions]

        if len(gift_ids) != len(self.gifts):
            raise ValueError("Duplicate gift ids")
        if len(ministry_ids) != len(self.ministries):
            raise ValueError("Duplicate ministry ids")
        if len(set(question_ids)) != len(question_ids):
            raise ValueError("Duplicate question ids")

        for q in self.questions:
            unknown = set(q.gift_weights) - gift_ids
            if unknown:
                raise ValueError(f"Question {q.id} weights unknown gifts: {sorted(unknown)}")
            unknown = set(q.personality_weights) - set(TRAIT_AXES)
            if unknown:
                raise ValueError(f"Question {q.id} weights unknown traits: {sorted(unknown)}")
            unknown = set(q.ministry_weights) - ministry_ids
            if unknown:
                raise ValueError(f"Question {q.id} weights unknown ministries: {sorted(unknown)}")
            if q.type == "multiple-choice" and not q.options:
                raise ValueError(f"Question {q.id} is multiple-choice but has no options")

        for gift_id, targets in self.rules.gift_ministries.items():
            if gift_id not in gift_ids:
                raise ValueError(f"Bonus table references unknown gift '{gift_id}'")
            unknown = set(targets) - ministry_ids
            if unknown:
                raise ValueError(f"Bonus table for '{gift_id}' references unknown ministries: {sorted(unknown)}")

        for bonus in self.rules.personality_bonuses:
            if bonus.axis not in TRAIT_POLES:
                raise ValueError(f"Personality bonus uses unknown axis '{bonus.axis}'")
            if bonus.value not in TRAIT_POLES[bonus.axis]:
                raise ValueError(f"'{bonus.value}' is not a classification of {bonus.axis}")
            unknown = set(bonus.bonuses) - ministry_ids
            if unknown:
                raise ValueError(f"Personality bonus references unknown ministries: {sorted(unknown)}")
        return self

    def gift(self, gift_id: str) -> Optional[Gift]:
        return next((g for g in self.gifts if g.id == gift_id), None)

    def ministry(self, ministry_id: str) -> Optional[Ministry]:
        return next((m for m in self.ministries if m.id == ministry_id), None)

    def personality_type(self, name: str) -> Optional[PersonalityType]:
        return next((p for p in self.personality_types if p.name == name), None)


def _read_json(data_dir: Path, filename: str) -> dict:
    file_path = data_dir / filename
    if not file_path.exists():
        raise CatalogError(f"Catalog file not found: {file_path}")
    with file_path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Catalog file {file_path} is not valid JSON: {e}") from e


def load_catalog(data_dir: Path = DATA_DIR) -> ScoringCatalog:
    """
    Read and validate the survey catalog from ``data_dir``.

    Raises:
        CatalogError: if a file is missing or the data fails validation
    """
    questions = _read_json(data_dir, "questions.json")
    try:
        return ScoringCatalog(
            version=questions.get("version", "1.0"),
            sections=questions.get("sections", []),
            likert_options=questions.get("likert_options", []),
            questions=questions["questions"],
            gifts=_read_json(data_dir, "gifts.json")["gifts"],
            ministries=_read_json(data_dir, "ministries.json")["ministries"],
            personality_types=_read_json(data_dir, "personality_types.json")["personality_types"],
            rules=_read_json(data_dir, "scoring_rules.json"),
        )
    except (KeyError, ValidationError) as e:
        raise CatalogError(f"Invalid survey catalog in {data_dir}: {e}") from e
