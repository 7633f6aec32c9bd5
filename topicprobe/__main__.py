"""Entry point: parse arguments, run the selected command, map failures to exit codes."""

import asyncio
import sys
from collections.abc import Sequence

from topicprobe.cli import CommandLine, parse_args
from topicprobe.common.errors import ProbeError
from topicprobe.common.logging import command_ctx, configure_logging, group_id_ctx, logger, topic_ctx
from topicprobe.common.records import ProducerOptions
from topicprobe.consumer import run_consumer
from topicprobe.producer import run_producer


async def dispatch(cli: CommandLine) -> None:
    """Run the producer or consumer flow selected on the command line."""

    command_ctx.set(cli.command)
    topic_ctx.set(cli.connection.topic)
    if isinstance(cli.options, ProducerOptions):
        await run_producer(cli.connection, cli.options, client_id=cli.client_id)
        return
    group_id_ctx.set(cli.options.group_id)
    await run_consumer(cli.connection, cli.options, client_id=cli.client_id)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entrypoint for manual produce/consume checks."""

    cli = parse_args(argv)
    configure_logging(cli.log_level)
    try:
        asyncio.run(dispatch(cli))
    except ProbeError as exc:
        logger.error("fatal_error type=%s error=%s", type(exc).__name__, exc)
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(exc.exit_code) from exc


if __name__ == "__main__":
    main()
