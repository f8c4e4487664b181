from collections.abc import Callable
from typing import Any, TypeVar, cast

from celery import shared_task

from celery_tasks.main import celery_app  # noqa: F401

F = TypeVar("F", bound=Callable[..., Any])


def typed_shared_task(**options: Any) -> Callable[[F], F]:
    """
    ``shared_task`` that keeps the decorated function's signature visible to
    type checkers. Options are passed to Celery unchanged::

        @typed_shared_task(name="sweep_expired_refresh_tokens")
        def sweep() -> str: ...
    """

    def decorator(func: F) -> F:
        return cast(F, shared_task(**options)(func))

    return decorator
