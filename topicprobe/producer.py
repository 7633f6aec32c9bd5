"""Publish exactly one message and report where the broker put it."""

import asyncio
from collections.abc import Callable
from typing import Any

from aiokafka import AIOKafkaProducer

from topicprobe.common.errors import DeliveryError, SetupError
from topicprobe.common.logging import logger
from topicprobe.common.records import ConnectionParams, Delivery, OutgoingRecord, ProducerOptions

SEND_TIMEOUT_SECONDS = 5.0


async def build_producer(
    connection: ConnectionParams,
    client_id: str = "topicprobe",
    factory: Callable[..., Any] = AIOKafkaProducer,
) -> Any:
    """Create and start a producer client; any failure is fatal."""

    try:
        producer = factory(bootstrap_servers=connection.bootstrap_servers, client_id=client_id)
        await producer.start()
    except Exception as exc:
        raise SetupError(f"failed to create Kafka producer: {exc}") from exc
    logger.info("producer_client_built bootstrap_servers=%s", connection.bootstrap_servers)
    print("Built Kafka producer client")
    return producer


async def send_record(producer: Any, record: OutgoingRecord, timeout: float = SEND_TIMEOUT_SECONDS) -> Delivery:
    """Send one record and wait up to `timeout` seconds for the acknowledgment."""

    logger.info(
        "sending_message topic=%s key=%r partition=%r payload=%r headers=%r",
        record.topic,
        record.key,
        record.partition,
        record.payload,
        record.kafka_headers(),
    )
    print(f"Sending message to Kafka: {record.describe()}")
    try:
        metadata = await asyncio.wait_for(
            producer.send_and_wait(
                record.topic,
                value=record.value_bytes(),
                key=record.key_bytes(),
                partition=record.partition,
                timestamp_ms=record.timestamp_ms,
                headers=record.kafka_headers(),
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise DeliveryError(f"failed to deliver the message: no acknowledgment within {timeout}s") from exc
    except Exception as exc:
        raise DeliveryError(f"failed to deliver the message: {exc}") from exc
    return Delivery(partition=metadata.partition, offset=metadata.offset)


async def run_producer(
    connection: ConnectionParams,
    options: ProducerOptions,
    client_id: str = "topicprobe",
    factory: Callable[..., Any] = AIOKafkaProducer,
) -> Delivery:
    """Open producer, publish one message, close producer."""

    producer = await build_producer(connection, client_id=client_id, factory=factory)
    try:
        record = OutgoingRecord.build(connection.topic, options)
        delivery = await send_record(producer, record)
    finally:
        await producer.stop()

    logger.info("message_delivered partition=%s offset=%s", delivery.partition, delivery.offset)
    print(f"Message delivered to partition {delivery.partition} with offset {delivery.offset}")
    return delivery
