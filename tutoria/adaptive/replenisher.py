"""
Adaptive activity replenishment.

Keeps a placed student's queue of uncompleted activities at the target
depth by generating new ones, biased towards the student's weakest
subjects according to the insights report.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from loguru import logger

from tutoria.core.exceptions import ContentProviderError
from tutoria.core.models import Activity

from .topic_selector import TOPIC_CATALOG, activities_needed, plan_activities, uncompleted_activities

if TYPE_CHECKING:
    from tutoria.store.domain_store import DomainStore


class ActivityReplenisher:
    """
    Generates activities until a student has ``target_depth`` uncompleted.

    At most one replenishment runs per student; a call made while another
    is in flight for the same student returns immediately.
    """

    def __init__(
        self,
        store: DomainStore,
        rng: random.Random | None = None,
        target_depth: int = 3,
    ):
        self.store = store
        self.rng = rng or random.Random()
        self.target_depth = target_depth
        self._in_flight: set[str] = set()

    def is_generating(self, student_id: str) -> bool:
        return student_id in self._in_flight

    async def replenish(self, student_id: str) -> list[Activity]:
        """
        Run one replenishment cycle.

        Returns the activities created. A provider failure ends the cycle
        early; activities created before it are kept.
        """
        student = self.store.get_student(student_id)
        if student is None or not student.nivelamento_completed:
            return []
        if student_id in self._in_flight:
            logger.debug(f"Replenishment already running for {student_id}")
            return []

        activities = self.store.student_activities(student_id)
        answers = self.store.student_answers(student_id)
        needed = activities_needed(activities, answers, self.target_depth)
        if needed <= 0:
            return []

        self._in_flight.add(student_id)
        created: list[Activity] = []
        try:
            insights = await self.store.get_student_insights(student_id)
            waiting = {a.title for a in uncompleted_activities(activities, answers)}
            picks = plan_activities(insights.hub_data, waiting, needed, self.rng, TOPIC_CATALOG)
            for pick in picks:
                created.append(
                    await self.store.add_generated_activity(student_id, pick.subject, pick.topic)
                )
        except ContentProviderError as e:
            logger.warning(
                f"Replenishment for {student_id} abandoned after {len(created)} of {needed}: {e}"
            )
        finally:
            self._in_flight.discard(student_id)

        if created:
            logger.info(f"Generated {len(created)} activities for {student_id}")
        return created
