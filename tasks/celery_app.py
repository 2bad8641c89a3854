"""
Celery application configuration.

This module sets up Celery for background task processing with Redis
as the message broker and result backend. Celery beat drives the daily
database backup when BACKUP_SCHEDULER=celery.
"""

import os
import logging

from celery import Celery
from celery.signals import beat_init
from kombu import Exchange, Queue

logger = logging.getLogger(__name__)

# Get Redis URL from environment
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', REDIS_URL)
BACKUP_INTERVAL_HOURS = float(os.getenv('BACKUP_INTERVAL_HOURS', '24'))
BACKUP_TASK_NAME = 'tasks.backup_tasks.create_backup'

# Create Celery application
celery_app = Celery(
    'exceldata',
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=['tasks.backup_tasks']
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],

    # Timezone
    timezone='UTC',
    enable_utc=True,

    # Task execution
    task_track_started=True,
    task_time_limit=600,  # 10 minutes hard timeout
    task_soft_time_limit=540,
    worker_prefetch_multiplier=1,  # One task at a time per worker

    # Results
    result_expires=86400,  # Keep the last backup result for a day

    # Task routing
    task_default_queue='default',
    task_default_exchange='default',
    task_default_routing_key='default',

    # Task acknowledgement
    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,
)

# Define task queues
celery_app.conf.task_queues = (
    Queue('default', Exchange('default'), routing_key='default'),
    Queue('maintenance', Exchange('maintenance'), routing_key='maintenance.#'),
)

# Task routes
celery_app.conf.task_routes = {
    BACKUP_TASK_NAME: {'queue': 'maintenance', 'routing_key': 'maintenance.backup'},
}

# Beat schedule
celery_app.conf.beat_schedule = {
    'create-database-backup': {
        'task': BACKUP_TASK_NAME,
        'schedule': BACKUP_INTERVAL_HOURS * 3600.0,
    },
}


@beat_init.connect
def enqueue_startup_backup(sender=None, **kwargs):
    """Take one backup when beat starts; its first scheduled run is an interval later."""
    logger.info("Celery beat started, enqueueing startup backup")
    return celery_app.send_task(BACKUP_TASK_NAME)


if __name__ == '__main__':
    celery_app.start()
