from celery import Celery
from celery.schedules import crontab
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from loggers import get_logger
from src.main.config import config
from src.main.sentry import init_sentry

init_sentry()
logger = get_logger(__name__)


redis_url = config.redis.celery_dsn
rabbitmq_url = config.rabbitmq.dsn

# Async DB engine and session
engine = create_async_engine(config.postgres.dsn_async, pool_pre_ping=True)
local_async_session = async_sessionmaker(bind=engine, expire_on_commit=False)

celery_app = Celery(__name__, broker=rabbitmq_url, backend=redis_url)

celery_app.conf.broker_connection_retry_on_startup = True
celery_app.conf.update(
    task_create_missing_queues=True,
    task_acks_late=True,
    task_track_started=True,
    task_time_limit=600,
    task_always_eager=False,
)

celery_app.conf.update(
    include=[
        "src.user.tasks",
    ],
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "sweep_expired_refresh_tokens_hourly": {
        "task": "sweep_expired_refresh_tokens",
        "schedule": crontab(minute=0),
    },
}
