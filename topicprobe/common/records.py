"""Message shapes shared by the producer and consumer commands.

Optional fields stay `None` when absent; an empty string is a present value.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class HeaderEntry(BaseModel):
    """One `--header` occurrence; `value` is None when no `=` was given."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str | None = None


class ConnectionParams(BaseModel):
    """Broker contact points and target topic, shared by both commands."""

    model_config = ConfigDict(frozen=True)

    bootstrap_servers: str
    topic: str


class ProducerOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    partition: int | None = None
    payload: str | None = None
    key: str | None = None
    headers: tuple[HeaderEntry, ...] = ()


class ConsumerOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_id: str


class Delivery(BaseModel):
    """Broker acknowledgment for one produced message."""

    partition: int
    offset: int


class OutgoingRecord(BaseModel):
    """Single-use record assembled right before a send."""

    model_config = ConfigDict(frozen=True)

    topic: str
    partition: int | None = None
    payload: str | None = None
    key: str | None = None
    timestamp_ms: int | None = None
    headers: tuple[HeaderEntry, ...] | None = None

    @classmethod
    def build(cls, topic: str, options: ProducerOptions) -> "OutgoingRecord":
        """Assemble a record; headers are attached only when at least one was given."""

        return cls(
            topic=topic,
            partition=options.partition,
            payload=options.payload,
            key=options.key,
            timestamp_ms=None,
            headers=tuple(options.headers) or None,
        )

    def value_bytes(self) -> bytes | None:
        return None if self.payload is None else self.payload.encode("utf-8")

    def key_bytes(self) -> bytes | None:
        return None if self.key is None else self.key.encode("utf-8")

    def kafka_headers(self) -> list[tuple[str, bytes | None]] | None:
        """Headers in the `(name, value)` shape the Kafka client expects."""

        if self.headers is None:
            return None
        return [
            (header.name, None if header.value is None else header.value.encode("utf-8"))
            for header in self.headers
        ]

    def describe(self) -> str:
        headers = None if self.headers is None else [(h.name, h.value) for h in self.headers]
        return (
            f"TOPIC=({self.topic}) KEY=({self.key!r}) PARTITION=({self.partition!r}) "
            f"PAYLOAD=({self.payload!r}) HEADERS=({headers!r})"
        )


def lossy_decode(raw: bytes | None) -> str | None:
    """Decode bytes for display, replacing invalid UTF-8 instead of failing."""

    if raw is None:
        return None
    return raw.decode("utf-8", errors="replace")


def describe_incoming(msg: Any) -> str:
    """Render a consumed record (topic, key, partition, offset, payload, headers)."""

    raw_headers = getattr(msg, "headers", None)
    headers = None if not raw_headers else [(name, lossy_decode(value)) for name, value in raw_headers]
    return (
        f"TOPIC=({msg.topic}) KEY=({lossy_decode(msg.key)!r}) PARTITION=({msg.partition}) "
        f"OFFSET=({msg.offset}) PAYLOAD=({lossy_decode(msg.value)!r}) HEADERS=({headers!r})"
    )
