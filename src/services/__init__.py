# Services package

from services.config_loader import (
    ConfigError,
    Settings,
    WorkflowDefinition,
    load_settings,
)
from services.log_service import (
    RunContextFilter,
    SizeAndTimeRotatingHandler,
    configure_logging,
    run_context,
)
from services.notifier import Notifier, NotifyError, RedisNotifier, WebhookNotifier
from services.run_store import RedisRunStore, RunNotFoundError
from services.task_invoker import HttpTaskInvoker, TaskInvoker
from services.trigger_adapter import (
    ObjectCreatedEvent,
    TriggerAdapter,
    TriggerEventError,
)
from services.trigger_queue import RedisTriggerQueue
from services.workflow_engine import WorkflowEngine

__all__ = [
    "ConfigError",
    "HttpTaskInvoker",
    "Notifier",
    "NotifyError",
    "ObjectCreatedEvent",
    "RedisNotifier",
    "RedisRunStore",
    "RedisTriggerQueue",
    "RunContextFilter",
    "RunNotFoundError",
    "Settings",
    "SizeAndTimeRotatingHandler",
    "TaskInvoker",
    "TriggerAdapter",
    "TriggerEventError",
    "WebhookNotifier",
    "WorkflowDefinition",
    "WorkflowEngine",
    "configure_logging",
    "load_settings",
    "run_context",
]
