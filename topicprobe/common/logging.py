"""Structured JSON logging with per-command context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter


command_ctx: ContextVar[str] = ContextVar("command", default="")
topic_ctx: ContextVar[str] = ContextVar("topic", default="")
group_id_ctx: ContextVar[str] = ContextVar("group_id", default="")


class ContextFilter(logging.Filter):
    """Inject the running command and its target into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.command = command_ctx.get()
        record.topic = topic_ctx.get()
        record.group_id = group_id_ctx.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logger once per process."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    formatter = JsonFormatter("%(asctime)s %(levelname)s %(command)s %(topic)s %(group_id)s %(message)s")
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
    root.addFilter(context_filter)


logger = logging.getLogger("topicprobe")
