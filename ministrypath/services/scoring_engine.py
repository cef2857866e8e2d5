"""
Survey scoring: gift scores, personality profile and ministry matches.

Everything here is a pure function of the answer map and the catalog it is
given. A missing, malformed or unknown answer contributes nothing; no input
makes these functions raise.
"""
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .catalog import TRAIT_AXES, TRAIT_POLES, ScoringCatalog
from ..schemas import GiftScore, MinistryMatch, PersonalityProfile, ScoringResult

Answers = Mapping[str, Any]

LIKERT_MIN = 1
LIKERT_MAX = 5
TRAIT_THRESHOLD = 0.2

DEFAULT_PERSONALITY_TYPE = "Steady Servant"

TraitClassification = Dict[str, str]

# Evaluated top to bottom; the first predicate that holds names the type.
PERSONALITY_TYPE_RULES: Tuple[Tuple[str, Callable[[TraitClassification], bool]], ...] = (
    ("Warm Encourager",
     lambda t: t["introvert_extrovert"] == "extrovert" and t["people_tasks"] == "people-focused"),
    ("Visionary Leader",
     lambda t: t["introvert_extrovert"] == "extrovert" and t["detail_big_picture"] == "big-picture"),
    ("Thoughtful Teacher",
     lambda t: t["detail_big_picture"] == "detail-oriented" and t["structured_flexible"] == "structured"),
    ("Creative Expresser",
     lambda t: t["structured_flexible"] == "flexible" and t["people_tasks"] == "people-focused"),
    ("Organized Administrator",
     lambda t: t["people_tasks"] == "task-focused" and t["structured_flexible"] == "structured"),
    ("Compassionate Caregiver",
     lambda t: t["people_tasks"] == "people-focused" and t["introvert_extrovert"] != "extrovert"),
    ("Bold Evangelist",
     lambda t: t["introvert_extrovert"] == "extrovert" and t["people_tasks"] != "task-focused"),
)

OUTGOING_MINISTRIES = ("greeters", "welcome-table", "cafe")
BEHIND_THE_SCENES_MINISTRIES = ("facilities", "sound")

OUTGOING_EXPLANATION = "Your outgoing personality makes you a natural fit for welcoming others."
TASK_EXPLANATION = "Your task-oriented approach is valuable for this behind-the-scenes ministry."
GENERIC_EXPLANATION = "Based on your responses, you may thrive in this serving role."


def likert_value(answer: Any) -> Optional[float]:
    """Return the answer as a Likert number, or None if it is not one."""
    # bool is an int subclass but never a Likert response
    if isinstance(answer, bool) or not isinstance(answer, (int, float)):
        return None
    if not LIKERT_MIN <= answer <= LIKERT_MAX:
        return None
    return float(answer)


def is_yes(answer: Any) -> bool:
    return isinstance(answer, str) and answer.strip().lower() == "yes"


def answer_multiplier(answer: Any) -> float:
    """Likert 1..5 -> 0..1, "yes" -> 1, everything else -> 0."""
    value = likert_value(answer)
    if value is not None:
        return (value - LIKERT_MIN) / (LIKERT_MAX - LIKERT_MIN)
    if is_yes(answer):
        return 1.0
    return 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_gift_scores(answers: Answers, catalog: ScoringCatalog) -> List[GiftScore]:
    """
    Normalize weighted gift totals to 0-100 against the strongest gift.

    Returned highest first; equal scores keep catalog order.
    """
    totals: Dict[str, float] = {gift.id: 0.0 for gift in catalog.gifts}

    for question in catalog.questions:
        if not question.gift_weights:
            continue
        answer = answers.get(question.id)
        if answer is None:
            continue
        multiplier = answer_multiplier(answer)
        for gift_id, weight in question.gift_weights.items():
            totals[gift_id] += weight * multiplier

    max_total = max(totals.values(), default=0.0)
    scores = []
    for gift in catalog.gifts:
        if max_total > 0:
            score = max(0, _round_half_up(totals[gift.id] / max_total * 100))
        else:
            score = 0
        scores.append(GiftScore(
            gift=gift.id,
            name=gift.name,
            score=score,
            description=gift.description,
            biblical_reference=gift.biblical_reference,
        ))

    return sorted(scores, key=lambda s: s.score, reverse=True)


def classify_trait(axis: str, value: float) -> str:
    positive, negative, middle = TRAIT_POLES[axis]
    if value > TRAIT_THRESHOLD:
        return positive
    if value < -TRAIT_THRESHOLD:
        return negative
    return middle


def select_personality_type(
    traits: TraitClassification,
    rules: Sequence[Tuple[str, Callable[[TraitClassification], bool]]] = PERSONALITY_TYPE_RULES,
    default: str = DEFAULT_PERSONALITY_TYPE,
) -> str:
    for label, matches in rules:
        if matches(traits):
            return label
    return default


def calculate_personality_profile(answers: Answers, catalog: ScoringCatalog) -> PersonalityProfile:
    """
    Average each trait axis over the answered questions that weight it.

    Likert maps to -1..1 around the neutral answer. A non-numeric answer adds
    nothing but still counts toward the average.
    """
    sums: Dict[str, float] = {axis: 0.0 for axis in TRAIT_AXES}
    counts: Dict[str, int] = {axis: 0 for axis in TRAIT_AXES}

    for question in catalog.questions:
        if not question.personality_weights:
            continue
        answer = answers.get(question.id)
        if answer is None:
            continue
        value = likert_value(answer)
        multiplier = (value - 3) / 2 if value is not None else 0.0
        for axis, weight in question.personality_weights.items():
            sums[axis] += weight * multiplier
            counts[axis] += 1

    averages = {
        axis: sums[axis] / counts[axis] if counts[axis] else 0.0
        for axis in TRAIT_AXES
    }
    classification = {axis: classify_trait(axis, averages[axis]) for axis in TRAIT_AXES}
    type_name = select_personality_type(classification)
    type_data = catalog.personality_type(type_name)

    return PersonalityProfile(
        type=type_name,
        traits=list(type_data.traits) if type_data else [],
        description=type_data.description if type_data else "",
        trait_scores=averages,
        **classification,
    )


def _growth_pathway(ministry_name: str) -> str:
    return (
        f"You show interest in {ministry_name}, but may need additional training or experience. "
        "Consider shadowing current team members or taking relevant classes to develop your skills."
    )


def _why_matched(
    ministry_id: str,
    top_gifts: Sequence[GiftScore],
    personality: PersonalityProfile,
    catalog: ScoringCatalog,
) -> str:
    matching = [
        catalog.gift(g.gift).short_name
        for g in top_gifts
        if ministry_id in catalog.rules.gift_ministries.get(g.gift, ())
    ]
    if matching:
        return f"Your gifts of {' and '.join(matching)} align well with this ministry."
    if personality.introvert_extrovert == "extrovert" and ministry_id in OUTGOING_MINISTRIES:
        return OUTGOING_EXPLANATION
    if personality.people_tasks == "task-focused" and ministry_id in BEHIND_THE_SCENES_MINISTRIES:
        return TASK_EXPLANATION
    return GENERIC_EXPLANATION


def calculate_ministry_matches(
    answers: Answers,
    gift_scores: Sequence[GiftScore],
    personality: PersonalityProfile,
    catalog: ScoringCatalog,
) -> List[MinistryMatch]:
    """
    Rank every ministry in the catalog for this member.

    Question weights come first, then a bonus for ministries tied to the top
    gifts, then personality bonuses. Up to ``primary_count`` leading ministries
    above ``primary_threshold`` are marked primary.
    """
    rules = catalog.rules
    scores: Dict[str, float] = {m.id: 0.0 for m in catalog.ministries}
    verified: Set[str] = set()

    for question in catalog.questions:
        if not question.ministry_weights:
            continue
        answer = answers.get(question.id)
        if answer is None:
            continue
        multiplier = answer_multiplier(answer)
        if question.skill_verification and is_yes(answer):
            verified.update(question.ministry_weights)
        for ministry_id, weight in question.ministry_weights.items():
            scores[ministry_id] += weight * multiplier

    top_gifts = list(gift_scores[:rules.top_gift_count])
    for gift_score in top_gifts:
        for ministry_id in rules.gift_ministries.get(gift_score.gift, ()):
            scores[ministry_id] += (gift_score.score / 100) * rules.gift_bonus_factor

    for bonus in rules.personality_bonuses:
        if personality.classification(bonus.axis) == bonus.value:
            for ministry_id, amount in bonus.bonuses.items():
                scores[ministry_id] += amount

    ranked = sorted(catalog.ministries, key=lambda m: scores[m.id], reverse=True)

    matches = []
    for position, ministry in enumerate(ranked):
        score = scores[ministry.id]
        needs_verification = ministry.requires_skill_verification and ministry.id not in verified
        growth_pathway = None
        if needs_verification and score > rules.growth_pathway_threshold:
            growth_pathway = _growth_pathway(ministry.name)

        matches.append(MinistryMatch(
            ministry_id=ministry.id,
            name=ministry.name,
            category=ministry.category,
            score=score,
            description=ministry.description,
            why_matched=_why_matched(ministry.id, top_gifts, personality, catalog),
            is_primary=position < rules.primary_count and score > rules.primary_threshold,
            requires_skill_verification=needs_verification,
            growth_pathway=growth_pathway,
        ))
    return matches


def score_answers(answers: Optional[Answers], catalog: ScoringCatalog) -> ScoringResult:
    """Run the full scoring pass for one answer set."""
    answers = answers or {}
    gift_scores = calculate_gift_scores(answers, catalog)
    personality = calculate_personality_profile(answers, catalog)
    matches = calculate_ministry_matches(answers, gift_scores, personality, catalog)
    return ScoringResult(
        spiritual_gifts=gift_scores,
        personality_profile=personality,
        ministry_matches=matches,
    )
