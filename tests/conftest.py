import os

import pytest

from schedule_config import GeneratorConfig
from schedule_model import ScheduleContext
from schedule_parser import parse_schedule
from tick_allocator import TickAllocator

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "..", "config")


def _build_schedule(text: str, conditionals=(), **config_fields) -> ScheduleContext:
    """Parse and allocate TEXT into a fresh context."""
    config = GeneratorConfig(**config_fields).validate()
    ctx = ScheduleContext(config, conditionals=conditionals)
    parse_schedule(text.splitlines(), ctx, TickAllocator(ctx), source="test.sched")
    return ctx


@pytest.fixture
def schedule():
    return _build_schedule


@pytest.fixture
def config_dir():
    return CONFIG_DIR
