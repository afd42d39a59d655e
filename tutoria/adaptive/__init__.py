"""
Adaptive Module - Placement and activity selection.

Components:
- placement: Placement test runner and score normalization
- topic_selector: Weighted subject pool and topic picking
- replenisher: Keeps each student's activity queue filled
"""

from tutoria.adaptive.placement import PlacementTest, normalize_results
from tutoria.adaptive.replenisher import ActivityReplenisher
from tutoria.adaptive.topic_selector import (
    LEVEL_WEIGHTS,
    TOPIC_CATALOG,
    TopicChoice,
    activities_needed,
    build_weighted_pool,
    level_weight,
    pick_topic,
    plan_activities,
    uncompleted_activities,
)

__all__ = [
    "ActivityReplenisher",
    "LEVEL_WEIGHTS",
    "PlacementTest",
    "TOPIC_CATALOG",
    "TopicChoice",
    "activities_needed",
    "build_weighted_pool",
    "level_weight",
    "normalize_results",
    "pick_topic",
    "plan_activities",
    "uncompleted_activities",
]
