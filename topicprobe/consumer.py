"""Subscribe to one topic and print messages until SIGTERM.

Each message is committed without waiting for the broker. SIGTERM ends the
loop, after which outstanding commits settle and the partition assignment is
released so the group can rebalance right away.
"""

import asyncio
import signal
from collections.abc import Callable
from contextlib import suppress
from typing import Any

from aiokafka import AIOKafkaConsumer, TopicPartition

from topicprobe.common.errors import CommitError, ReceiveError, SetupError, UnassignError
from topicprobe.common.logging import logger
from topicprobe.common.records import ConnectionParams, ConsumerOptions, describe_incoming
from topicprobe.common.state_machine import DRAINING, RUNNING, STARTING, validate_transition

STOP_SIGNAL = signal.SIGTERM


def install_stop_handler(loop: asyncio.AbstractEventLoop, sig: int = STOP_SIGNAL) -> asyncio.Event:
    """Return an event that is set when `sig` arrives."""

    stop_event = asyncio.Event()
    try:
        loop.add_signal_handler(sig, stop_event.set)
    except (NotImplementedError, RuntimeError, ValueError) as exc:
        raise SetupError(f"failed to prepare signal handler: {exc}") from exc
    return stop_event


async def build_consumer(
    connection: ConnectionParams,
    options: ConsumerOptions,
    client_id: str = "topicprobe",
    factory: Callable[..., Any] = AIOKafkaConsumer,
) -> Any:
    """Create, start and subscribe a consumer client; any failure is fatal."""

    try:
        consumer = factory(
            bootstrap_servers=connection.bootstrap_servers,
            group_id=options.group_id,
            client_id=client_id,
            enable_auto_commit=False,
        )
        await consumer.start()
    except Exception as exc:
        raise SetupError(f"failed to create Kafka consumer: {exc}") from exc
    logger.info("consumer_client_built bootstrap_servers=%s", connection.bootstrap_servers)
    print("Built Kafka consumer client")

    print(f"Subscribing to topic {connection.topic}")
    try:
        consumer.subscribe(topics=[connection.topic])
    except Exception as exc:
        raise SetupError(f"failed to subscribe to the topic: {exc}") from exc
    logger.info("subscribed topic=%s", connection.topic)
    print("Subscribed to the topic")
    return consumer


class ConsumeLoop:
    """Receive/print/commit loop for one subscribed consumer."""

    def __init__(self, consumer: Any, stop_event: asyncio.Event) -> None:
        self.consumer = consumer
        self.stop_event = stop_event
        self.state = STARTING
        self.handled = 0
        self._commits: set[asyncio.Future] = set()
        self._commit_failure: asyncio.Future | None = None

    def _transition(self, new: str) -> None:
        validate_transition(self.state, new)
        logger.info("consumer_state from=%s to=%s", self.state, new)
        self.state = new

    async def run(self) -> int:
        """Race the next message against the stop event until stop wins."""

        self._commit_failure = asyncio.get_running_loop().create_future()
        self._transition(RUNNING)
        stop_task = asyncio.ensure_future(self.stop_event.wait())
        try:
            while not self.stop_event.is_set():
                self._raise_commit_failure()
                fetch = asyncio.ensure_future(self.consumer.getone())
                done, _ = await asyncio.wait(
                    {fetch, stop_task, self._commit_failure},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if fetch in done:
                    self.handle(self._fetched(fetch))
                    continue
                fetch.cancel()
                with suppress(asyncio.CancelledError):
                    await fetch
        finally:
            stop_task.cancel()
        return self.handled

    def _fetched(self, fetch: asyncio.Future) -> Any:
        try:
            return fetch.result()
        except Exception as exc:
            raise ReceiveError(f"failed to receive the next message from Kafka: {exc}") from exc

    def handle(self, msg: Any) -> None:
        """Print one message and schedule its offset commit."""

        print(f"Received a message: {describe_incoming(msg)}")
        self.commit(msg)
        self.handled += 1

    def commit(self, msg: Any) -> None:
        """Fire-and-forget commit; the next offset to read is stored for the message's partition."""

        tp = TopicPartition(msg.topic, msg.partition)
        task = asyncio.ensure_future(self.consumer.commit({tp: msg.offset + 1}))
        self._commits.add(task)
        task.add_done_callback(self._commit_done)

    def _commit_done(self, task: asyncio.Future) -> None:
        self._commits.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._commit_failure is not None and not self._commit_failure.done():
            self._commit_failure.set_result(exc)

    def _raise_commit_failure(self) -> None:
        if self._commit_failure is not None and self._commit_failure.done():
            exc = self._commit_failure.result()
            raise CommitError(f"failed to commit message: {exc}") from exc

    async def drain(self) -> None:
        """Settle outstanding commits, then release the partition assignment."""

        self._transition(DRAINING)
        logger.info("consumer_shutdown reason=SIGTERM")
        print("Received SIGTERM, exiting")
        results = await asyncio.gather(*self._commits, return_exceptions=True)
        self._raise_commit_failure()
        for result in results:
            if isinstance(result, Exception):
                raise CommitError(f"failed to commit message: {result}") from result
        try:
            self.consumer.unsubscribe()
        except Exception as exc:
            raise UnassignError(f"failed to unassign the consumer before exit: {exc}") from exc
        logger.info("consumer_unassigned handled=%s", self.handled)


async def run_consumer(
    connection: ConnectionParams,
    options: ConsumerOptions,
    client_id: str = "topicprobe",
    factory: Callable[..., Any] = AIOKafkaConsumer,
    stop_event: asyncio.Event | None = None,
) -> int:
    """Consume until the stop event fires; returns the number of messages handled.

    Without an explicit `stop_event` a SIGTERM handler is installed before the
    client is built and removed on exit.
    """

    loop = asyncio.get_running_loop()
    owns_handler = stop_event is None
    if stop_event is None:
        stop_event = install_stop_handler(loop)
    try:
        consumer = await build_consumer(connection, options, client_id=client_id, factory=factory)
        try:
            consume_loop = ConsumeLoop(consumer, stop_event)
            handled = await consume_loop.run()
            await consume_loop.drain()
        finally:
            await consumer.stop()
    finally:
        if owns_handler:
            loop.remove_signal_handler(STOP_SIGNAL)
    return handled
