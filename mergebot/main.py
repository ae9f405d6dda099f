import asyncio

import structlog
from prometheus_client import start_http_server

from mergebot.core.config import Settings, get_settings
from mergebot.core.logging_setup import configure_logging
from mergebot.services.batch_pipeline import LinkBatchPipeline, PipelineConfig
from mergebot.transport.polling import run_polling
from mergebot.transport.telegram import TelegramClient

logger = structlog.get_logger(__name__)


async def serve(settings: Settings) -> None:
    if not settings.BOT_API_TOKEN:
        raise RuntimeError("BOT_API_TOKEN not found in environment")

    if settings.METRICS_PORT:
        start_http_server(settings.METRICS_PORT)
        logger.info("metrics.listening", port=settings.METRICS_PORT)

    config = PipelineConfig.from_settings(settings)
    async with TelegramClient(
        settings.BOT_API_TOKEN,
        base_url=settings.TELEGRAM_API_BASE_URL,
        timeout=settings.TELEGRAM_POLL_TIMEOUT + 30,
    ) as client:
        pipeline = LinkBatchPipeline(client, config)
        logger.info(
            "bot.startup",
            environment=settings.ENVIRONMENT,
            concurrency=config.concurrency,
        )
        await run_polling(client, pipeline.handle_text, poll_timeout=settings.TELEGRAM_POLL_TIMEOUT)


def run() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("bot.shutdown")


if __name__ == "__main__":
    run()
