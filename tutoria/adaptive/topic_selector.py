"""
Topic selection for adaptive practice.

Subjects are drawn from a pool weighted by proficiency: the weaker the
level, the more often the subject appears. Topics come from a static
catalog, avoiding titles already waiting in the student's queue.

All randomness goes through an injected ``random.Random``.
"""

from __future__ import annotations

import random
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass

from tutoria.core.grading import is_uncompleted
from tutoria.core.models import Activity, HubInfo, ProficiencyLevel, StudentAnswer


@dataclass(frozen=True)
class TopicChoice:
    subject: str
    topic: str


TOPIC_CATALOG: tuple[TopicChoice, ...] = (
    TopicChoice("Matemática", "Operações com frações"),
    TopicChoice("Português", "Identificação de sujeito e predicado"),
    TopicChoice("Ciências", "O ciclo da água na natureza"),
    TopicChoice("História", "As Grandes Navegações"),
    TopicChoice("Geografia", "Biomas do Brasil"),
    TopicChoice("Matemática", "Cálculo de área e perímetro"),
    TopicChoice("Português", "Uso de pontuação (vírgula e ponto final)"),
    TopicChoice("Ciências", "O sistema solar"),
    TopicChoice("Matemática", "Problemas de lógica com números"),
    TopicChoice("Português", "Interpretação de fábulas"),
)

LEVEL_WEIGHTS: dict[ProficiencyLevel, int] = {
    ProficiencyLevel.INICIANTE: 4,
    ProficiencyLevel.EM_DESENVOLVIMENTO: 3,
    ProficiencyLevel.ADEQUADO: 1,
    ProficiencyLevel.AVANCADO: 0,
}

# Weight for level labels outside the controlled vocabulary.
UNKNOWN_LEVEL_WEIGHT = 1


def level_weight(level: str) -> int:
    parsed = ProficiencyLevel.parse(level)
    if parsed is None:
        return UNKNOWN_LEVEL_WEIGHT
    return LEVEL_WEIGHTS[parsed]


def build_weighted_pool(hub_data: Iterable[HubInfo]) -> list[str]:
    """
    Repeat each subject by its level weight.

    When every subject weighs zero (all advanced), each subject appears
    once instead, so the pool is never empty while subjects exist.
    """
    hub_data = list(hub_data)
    pool: list[str] = []
    for info in hub_data:
        pool.extend([info.subject] * level_weight(info.level))
    if not pool:
        pool = [info.subject for info in hub_data]
    return pool


def pick_topic(
    subject: str,
    excluded_titles: Collection[str],
    rng: random.Random,
    catalog: Sequence[TopicChoice] = TOPIC_CATALOG,
) -> TopicChoice:
    """
    Choose a catalog topic for ``subject`` not already in ``excluded_titles``.

    Falls back to any topic in the catalog when the subject has none left.
    """
    available = [t for t in catalog if t.subject == subject and t.topic not in excluded_titles]
    if available:
        return rng.choice(available)
    return rng.choice(list(catalog))


def uncompleted_activities(
    activities: Iterable[Activity],
    answers: Iterable[StudentAnswer],
) -> list[Activity]:
    by_activity = {ans.activity_id: ans for ans in answers}
    return [act for act in activities if is_uncompleted(act, by_activity.get(act.id))]


def activities_needed(
    activities: Iterable[Activity],
    answers: Iterable[StudentAnswer],
    target: int = 3,
) -> int:
    """How many activities to generate to reach ``target`` uncompleted ones."""
    return max(0, target - len(uncompleted_activities(activities, answers)))


def plan_activities(
    hub_data: Iterable[HubInfo],
    excluded_titles: Collection[str],
    needed: int,
    rng: random.Random,
    catalog: Sequence[TopicChoice] = TOPIC_CATALOG,
) -> list[TopicChoice]:
    """
    Pick ``needed`` (subject, topic) pairs.

    Exclusions are the titles waiting at planning time; picks within one
    plan may repeat. Without any subject data, topics come from the whole
    catalog.
    """
    if needed <= 0:
        return []
    pool = build_weighted_pool(hub_data)
    if not pool:
        return [rng.choice(list(catalog)) for _ in range(needed)]
    return [pick_topic(rng.choice(pool), excluded_titles, rng, catalog) for _ in range(needed)]
