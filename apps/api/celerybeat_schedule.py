"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

# Schedule configuration
beat_schedule = {
    # Streaks are day-granular (UTC): just after midnight anyone who missed
    # yesterday drops back to zero.
    'reset-stale-streaks': {
        'task': 'tasks.reset_stale_streaks',
        'schedule': crontab(hour=0, minute=5),
    },
    # Athlete premium lasts ATHLETE_PREMIUM_DURATION_DAYS from purchase
    'expire-premium-memberships': {
        'task': 'tasks.expire_premium_memberships',
        'schedule': crontab(hour=0, minute=15),
    },
}
