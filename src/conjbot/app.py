"""Main application entry point."""
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from conjbot import monitoring
from conjbot.bot import (
    MAIN_MENU,
    TRAINER_KEY,
    TRAINING,
    handle_answer,
    handle_callback,
    handle_message,
    handle_reset_command,
    handle_start,
)
from conjbot.config import settings
from conjbot.models.base import init_db


def build_conversation_handler() -> ConversationHandler:
    """Conversation handler for the settings menu and training."""
    return ConversationHandler(
        entry_points=[CommandHandler("start", handle_start)],
        states={
            MAIN_MENU: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message),
                CallbackQueryHandler(handle_callback),
            ],
            TRAINING: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_answer),
                CallbackQueryHandler(handle_callback),
            ],
        },
        fallbacks=[
            CommandHandler("start", handle_start),
            CommandHandler("reset", handle_reset_command),
        ],
        per_message=False,
    )


class ConjBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            settings.validate_bot()

            # Initialize database
            init_db()
            self.logger.info("Database initialized")

            if settings.monitoring.port:
                monitoring.start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exported on port {settings.monitoring.port}")

            # Create application
            self.application = Application.builder().token(settings.bot.token).build()
            self.logger.info("Application created")

            self.application.add_handler(build_conversation_handler())
            self.logger.info("Handlers added")

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop(force=True)
            raise

    async def stop(self, force: bool = False) -> None:
        """Stop the application."""
        if not self.running and not force:
            return

        try:
            if self.application:
                # Cancel pending auto-advances before the loop goes away
                for user_data in self.application.user_data.values():
                    trainer = user_data.get(TRAINER_KEY)
                    if trainer is not None:
                        trainer.close()

                if self.application.running:
                    await self.application.updater.stop()
                    await self.application.stop()
                await self.application.shutdown()
                self.application = None
                self.logger.info("Application stopped")

            self.running = False

        except Exception as e:
            self.logger.error("Error while stopping application: %s", str(e))
            self.running = False
            self.application = None
            raise
