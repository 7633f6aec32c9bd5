"""Command-line surface shared by the producer and consumer commands.

Global options name the broker and topic; each subcommand adds its own.
Options marked with an environment variable fall back to it when the flag is
omitted, and are required when neither is set.
"""

import argparse
from collections.abc import Sequence

from pydantic import BaseModel

from topicprobe.common.config import ProbeSettings, load_settings
from topicprobe.common.records import ConnectionParams, ConsumerOptions, HeaderEntry, ProducerOptions

PRODUCER = "producer"
CONSUMER = "consumer"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class CommandLine(BaseModel):
    """Validated invocation: which command to run and with what."""

    command: str
    connection: ConnectionParams
    options: ProducerOptions | ConsumerOptions
    log_level: str = "INFO"
    client_id: str = "topicprobe"


def parse_header(token: str) -> HeaderEntry:
    """Split a header token on its last `=`; without one the token is the name."""

    name, sep, value = token.rpartition("=")
    if not sep:
        return HeaderEntry(name=token, value=None)
    return HeaderEntry(name=name, value=value)


def _env_option(
    parser: argparse.ArgumentParser,
    flag: str,
    env_var: str,
    default: str | None,
    help_text: str,
) -> None:
    """Add a string option that falls back to an environment variable."""

    default = default or None
    parser.add_argument(
        flag,
        default=default,
        required=default is None,
        help=f"{help_text} [env: {env_var}]",
    )


def build_parser(settings: ProbeSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topicprobe",
        description="Manually produce to or consume from a Kafka topic.",
    )
    _env_option(
        parser,
        "--kafka-topic-name",
        "KAFKA_TOPIC_NAME",
        settings.kafka_topic_name,
        "Topic to produce to or subscribe to",
    )
    _env_option(
        parser,
        "--kafka-bootstrap-servers",
        "KAFKA_BOOTSTRAP_SERVERS",
        settings.kafka_bootstrap_servers,
        "Comma-separated broker addresses",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for diagnostic output [env: LOG_LEVEL]",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="{producer,consumer}", required=True)

    producer = subparsers.add_parser(PRODUCER, aliases=["produce"], help="Send one message and exit")
    producer.set_defaults(flow=PRODUCER)
    producer.add_argument(
        "--partition",
        type=int,
        default=None,
        help="Target partition; the partitioner picks one when omitted",
    )
    producer.add_argument("--payload", default=None, help="Message payload")
    producer.add_argument("--key", default=None, help="Message key")
    producer.add_argument(
        "--header",
        dest="headers",
        action="append",
        type=parse_header,
        default=None,
        metavar="NAME[=VALUE]",
        help=(
            "Message header, split on the last '='; without '=' the whole value is the "
            "header name and the header has no value. Can be given multiple times."
        ),
    )

    consumer = subparsers.add_parser(CONSUMER, aliases=["consume"], help="Print messages until SIGTERM")
    consumer.set_defaults(flow=CONSUMER)
    _env_option(consumer, "--kafka-group-id", "KAFKA_GROUP_ID", settings.kafka_group_id, "Consumer group id")

    return parser


def parse_args(argv: Sequence[str] | None = None, settings: ProbeSettings | None = None) -> CommandLine:
    """Parse argv into a `CommandLine`; usage errors exit with status 2."""

    if settings is None:
        settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} (choose from {', '.join(LOG_LEVELS)})")

    connection = ConnectionParams(
        bootstrap_servers=args.kafka_bootstrap_servers,
        topic=args.kafka_topic_name,
    )
    if args.flow == PRODUCER:
        options: ProducerOptions | ConsumerOptions = ProducerOptions(
            partition=args.partition,
            payload=args.payload,
            key=args.key,
            headers=tuple(args.headers or ()),
        )
    else:
        options = ConsumerOptions(group_id=args.kafka_group_id)

    return CommandLine(
        command=args.flow,
        connection=connection,
        options=options,
        log_level=args.log_level,
        client_id=settings.topicprobe_client_id,
    )
