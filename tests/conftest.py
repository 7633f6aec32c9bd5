"""In-memory stand-ins for the Kafka clients used by the flows."""

import asyncio
from collections import namedtuple

import pytest

from topicprobe.common.records import ConnectionParams

RecordMetadata = namedtuple("RecordMetadata", ["topic", "partition", "offset"])
ConsumerRecord = namedtuple("ConsumerRecord", ["topic", "partition", "offset", "key", "value", "headers"])


class FakeProducer:
    """Acknowledges every send with the next offset; acts as its own factory."""

    def __init__(self, start_error=None, send_error=None, send_delay=None):
        self.config = None
        self.start_error = start_error
        self.send_error = send_error
        self.send_delay = send_delay
        self.sent = []
        self.started = False
        self.stopped = 0
        self.next_offset = 0

    def __call__(self, **config):
        self.config = config
        return self

    async def start(self):
        if self.start_error:
            raise self.start_error
        self.started = True

    async def send_and_wait(self, topic, value=None, key=None, partition=None, timestamp_ms=None, headers=None):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.send_error:
            raise self.send_error
        self.sent.append(
            {
                "topic": topic,
                "value": value,
                "key": key,
                "partition": partition,
                "timestamp_ms": timestamp_ms,
                "headers": headers,
            }
        )
        offset = self.next_offset
        self.next_offset += 1
        return RecordMetadata(topic, 0 if partition is None else partition, offset)

    async def stop(self):
        self.stopped += 1


class FakeConsumer:
    """Serves queued records, then calls `on_idle` and blocks until cancelled.

    Every client call is appended to `calls` so tests can check ordering.
    """

    def __init__(
        self,
        messages=(),
        start_error=None,
        subscribe_error=None,
        getone_error=None,
        commit_error=None,
        unsubscribe_error=None,
    ):
        self.config = None
        self.messages = list(messages)
        self.start_error = start_error
        self.subscribe_error = subscribe_error
        self.getone_error = getone_error
        self.commit_error = commit_error
        self.unsubscribe_error = unsubscribe_error
        self.on_idle = None
        self.calls = []

    def __call__(self, **config):
        self.config = config
        return self

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    @property
    def commits(self):
        return [call[1] for call in self.calls if call[0] == "commit"]

    async def start(self):
        self.calls.append(("start",))
        if self.start_error:
            raise self.start_error

    def subscribe(self, topics):
        self.calls.append(("subscribe", list(topics)))
        if self.subscribe_error:
            raise self.subscribe_error

    async def getone(self):
        self.calls.append(("getone",))
        if self.getone_error:
            raise self.getone_error
        if self.messages:
            return self.messages.pop(0)
        if self.on_idle:
            self.on_idle()
        await asyncio.Event().wait()

    async def commit(self, offsets):
        self.calls.append(("commit", dict(offsets)))
        if self.commit_error:
            raise self.commit_error

    def unsubscribe(self):
        self.calls.append(("unsubscribe",))
        if self.unsubscribe_error:
            raise self.unsubscribe_error

    async def stop(self):
        self.calls.append(("stop",))


@pytest.fixture
def connection():
    return ConnectionParams(bootstrap_servers="localhost:9092", topic="t")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run without KAFKA_* variables or a stray `.env` file."""

    for name in ["KAFKA_TOPIC_NAME", "KAFKA_BOOTSTRAP_SERVERS", "KAFKA_GROUP_ID", "LOG_LEVEL", "TOPICPROBE_CLIENT_ID", "CLIENT_ID"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def fake_producer():
    return FakeProducer


@pytest.fixture
def fake_consumer():
    return FakeConsumer


@pytest.fixture
def record():
    """Build a consumed record with sensible defaults."""

    def make(offset, partition=0, key=b"k", value=b"v", headers=(), topic="t"):
        return ConsumerRecord(topic, partition, offset, key, value, headers)

    return make
