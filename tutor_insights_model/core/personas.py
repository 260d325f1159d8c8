"""
Persona classification by nearest fixed centroid
"""
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..constants import PERSONA_DIMENSIONS, PERSONA_PERCENT_SCALED
from ..models import PersonaProfile, TutorFeatureVector


@dataclass(frozen=True)
class PersonaArchetype:
    """A hand-authored persona and its centroid in the normalized persona space."""
    profile: PersonaProfile
    centroid: Mapping[str, float]

    @property
    def id(self) -> str:
        return self.profile.id


class PersonaRegistry:
    """Immutable, ordered set of archetypes; order breaks distance ties."""

    def __init__(self, archetypes: Iterable[PersonaArchetype]):
        self._archetypes: Tuple[PersonaArchetype, ...] = tuple(
            PersonaArchetype(a.profile, MappingProxyType(dict(a.centroid))) for a in archetypes
        )
        ids = [a.id for a in self._archetypes]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate persona ids in registry: {ids}")

    def __iter__(self):
        return iter(self._archetypes)

    def __len__(self) -> int:
        return len(self._archetypes)

    def get(self, persona_id: str) -> Optional[PersonaArchetype]:
        for archetype in self._archetypes:
            if archetype.id == persona_id:
                return archetype
        return None

    def with_archetype(self, archetype: PersonaArchetype) -> "PersonaRegistry":
        """New registry with one archetype appended"""
        return PersonaRegistry(self._archetypes + (archetype,))


def default_persona_registry() -> PersonaRegistry:
    return PersonaRegistry([
        PersonaArchetype(
            profile=PersonaProfile(
                id="rising-star",
                label="Rising Star",
                description="Strong fundamentals with positive momentum. Benefit from advanced coaching to accelerate growth.",
                strengths=("Consistent improvements", "High student satisfaction"),
                risks=("Needs stretch assignments", "Watch for burnout"),
            ),
            centroid={
                "dropout_rate": 0.05,
                "first_session_dropout_rate": 0.05,
                "tutor_initiated_reschedule_rate": 0.05,
                "no_show_rate": 0.03,
                "trend_velocity": 0.2,
                "trend_slope": 0.3,
                "score": 0.85,
            },
        ),
        PersonaArchetype(
            profile=PersonaProfile(
                id="at-risk-newcomer",
                label="At-Risk Newcomer",
                description="Early-stage tutor with unstable first-session outcomes. Requires structured onboarding support.",
                strengths=("Coachability", "Fresh perspective"),
                risks=("High first-session churn", "Inconsistent delivery"),
            ),
            centroid={
                "dropout_rate": 0.2,
                "first_session_dropout_rate": 0.35,
                "tutor_initiated_reschedule_rate": 0.1,
                "no_show_rate": 0.05,
                "trend_velocity": -0.15,
                "trend_slope": -0.1,
                "score": 0.45,
            },
        ),
        PersonaArchetype(
            profile=PersonaProfile(
                id="reliability-challenged",
                label="Reliability Challenged",
                description="High dropout or reschedule behavior impacting student trust. Focus on accountability frameworks.",
                strengths=("Strong subject expertise",),
                risks=("Scheduling reliability", "Attendance issues"),
            ),
            centroid={
                "dropout_rate": 0.25,
                "first_session_dropout_rate": 0.2,
                "tutor_initiated_reschedule_rate": 0.35,
                "no_show_rate": 0.2,
                "trend_velocity": -0.05,
                "trend_slope": -0.05,
                "score": 0.5,
            },
        ),
        PersonaArchetype(
            profile=PersonaProfile(
                id="stabilizing",
                label="Stabilizing Performer",
                description="Recovering from previous performance issues with signs of stabilization. Keep momentum with lightweight support.",
                strengths=("Trend improving", "Responds to coaching"),
                risks=("Fragile confidence", "Needs reinforcement"),
            ),
            centroid={
                "dropout_rate": 0.12,
                "first_session_dropout_rate": 0.12,
                "tutor_initiated_reschedule_rate": 0.15,
                "no_show_rate": 0.08,
                "trend_velocity": 0.05,
                "trend_slope": 0.1,
                "score": 0.65,
            },
        ),
    ])


def persona_feature_point(vector: TutorFeatureVector) -> Dict[str, float]:
    """Project a vector into the 7-d persona space (trend and score divided by 100)."""
    point = {}
    for key in PERSONA_DIMENSIONS:
        value = vector.features.get(key, 0.0)
        point[key] = value / 100 if key in PERSONA_PERCENT_SCALED else value
    return point


def euclidean_distance(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    # sorted so the float sum is identical across processes
    keys = sorted(set(a) | set(b))
    return math.sqrt(sum((a.get(k, 0.0) - b.get(k, 0.0)) ** 2 for k in keys))


def assign_persona(vector: TutorFeatureVector, registry: Optional[PersonaRegistry] = None) -> Optional[PersonaProfile]:
    """Nearest-centroid match; None when the registry is empty."""
    if registry is None:
        registry = default_persona_registry()
    point = persona_feature_point(vector)

    closest = None
    min_distance = math.inf
    for archetype in registry:
        distance = euclidean_distance(point, archetype.centroid)
        if distance < min_distance:
            min_distance = distance
            closest = archetype

    return closest.profile if closest else None
