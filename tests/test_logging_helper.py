import asyncio

import pytest

from grower.errors import InvariantViolation
from grower.helpers import LoggingHelper


class SleepyBot:
    def is_ready(self):
        return False


def test_short_line_is_one_message():
    assert LoggingHelper._payloads("hello", "INFO", "`[t] [INFO]` ") == ["`[t] [INFO]` hello"]


def test_long_line_is_split_into_numbered_parts():
    payloads = LoggingHelper._payloads("x" * 4000, "ERROR", "`[t] [ERROR]` ")

    assert len(payloads) == 4
    assert payloads[0] == "`[t] [ERROR]` Long entry (4000 chars), sent in 3 parts."
    assert payloads[1].startswith("```ERROR part 1/3```\n")
    assert all(len(p) <= 2000 for p in payloads)
    assert "".join(p.split("\n", 1)[1] for p in payloads[1:]) == "x" * 4000


def test_report_invariant_raises_only_when_strict():
    with pytest.raises(InvariantViolation):
        LoggingHelper(strict=True).report_invariant("bad slot")

    LoggingHelper().report_invariant("bad slot")


def test_lines_are_queued_until_the_bot_is_ready():
    logger = LoggingHelper(SleepyBot(), log_channel_id=1234)

    asyncio.run(logger.log_to_discord("early bird", "warning"))

    assert logger._init_log_queue == [("early bird", "WARNING")]


def test_without_a_channel_nothing_is_queued():
    logger = LoggingHelper(SleepyBot())

    asyncio.run(logger.log_to_discord("dropped"))

    assert logger._init_log_queue == []
