"""Celery Beat schedule configuration.

Tasks:
- Every sweep interval: tournament lifecycle sweep
"""

from datetime import timedelta

from sweeps_ledger.config import get_settings


def build_beat_schedule() -> dict:
    interval = get_settings().tournament_sweep_interval_seconds
    return {
        # Promote due tournaments and pay out ended ones
        "tournament-sweep": {
            "task": "sweeps_ledger.tasks.tournaments.sweep_tournaments_task",
            "schedule": timedelta(seconds=interval),
            "options": {"queue": "settlement", "expires": interval},
        },
    }


CELERY_BEAT_SCHEDULE = build_beat_schedule()


# Task routing configuration
CELERY_TASK_ROUTES = {
    "sweeps_ledger.tasks.tournaments.*": {"queue": "settlement"},
}
