"""MetricGate agent entry point."""

import asyncio
import signal
from typing import Optional, Sequence

from metricgate.agent.runner import Agent
from metricgate.config import AgentSettings, load_agent_settings
from metricgate.observability import configure_logging


async def serve(settings: AgentSettings) -> None:
    """Run the agent until SIGINT or SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await Agent(settings).run(stop_event)


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = load_agent_settings(argv)
    configure_logging(settings.log_level)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
