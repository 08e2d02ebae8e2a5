"""
Main entry point for Strong Link Bot.
"""
import asyncio
from typing import Callable, Optional, Tuple
from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters
import config
from game.lobby import JoinResult, create_session, join
from game.models import GameLanguage, GameStatus
from bot.texts import texts
from utils.logging import setup_logging, get_logger
from utils.errors import ConfigurationError, GameError, QuestionPoolError

# Setup logging
setup_logging()
logger = get_logger(__name__)

# (text key, format arguments) for a reply, or None when the engine already spoke
Reply = Optional[Tuple[str, dict]]

_engine = None
_question_manager = None
_game_scheduler = None


def get_engine():
    """Get or create the process-wide game engine."""
    global _engine
    if _engine is None:
        from game.factory import build_game_engine
        _engine = build_game_engine()
    return _engine


def get_question_manager():
    global _question_manager
    if _question_manager is None:
        from questions.manager import QuestionManager
        _question_manager = QuestionManager(get_engine().store)
    return _question_manager


def get_game_scheduler():
    global _game_scheduler
    if _game_scheduler is None:
        from game.scheduling import GameScheduler
        _game_scheduler = GameScheduler(get_engine(), get_question_manager())
    return _game_scheduler


def is_admin(user_id: int) -> bool:
    """Admin commands are open to everyone when no admin ids are configured."""
    admin_ids = config.config.TELEGRAM_ADMIN_IDS
    return not admin_ids or user_id in admin_ids


def _language(chat_id: int) -> GameLanguage:
    session = get_engine().store.load(chat_id)
    if session is not None:
        return session.language
    return GameLanguage(config.config.DEFAULT_LANGUAGE)


async def _run_for_chat(update: Update, action: Callable[[int], Reply]) -> None:
    """
    Run a blocking game action for the chat of an update and send its reply.

    The action runs in a worker thread while holding the chat's lock, so events of
    one chat never interleave.
    """
    chat_id = update.effective_chat.id
    engine = get_engine()

    def locked() -> Tuple[Reply, GameLanguage]:
        with engine.chat_lock(chat_id):
            reply = action(chat_id)
            return reply, _language(chat_id)

    try:
        reply, language = await asyncio.to_thread(locked)
    except Exception as e:
        logger.error(f"Error handling update in chat {chat_id}: {e}", exc_info=True)
        return

    if reply is not None and update.message:
        key, kwargs = reply
        await update.message.reply_text(texts.get(language, key, **kwargs))


async def _require_admin(update: Update) -> bool:
    user = update.effective_user
    if user is not None and is_admin(user.id):
        return True
    logger.info(f"User {user.id if user else None} tried an admin command")
    if update.message:
        language = await asyncio.to_thread(_language, update.effective_chat.id)
        await update.message.reply_text(texts.get(language, "bot.not_admin"))
    return False


async def start_command(update: Update, context) -> None:
    """Handle /start command: set up a new session for the chat."""
    if not await _require_admin(update):
        return

    def action(chat_id: int) -> Reply:
        store = get_engine().store
        existing = store.load(chat_id)
        if existing is not None and (existing.is_playing or existing.status == GameStatus.PAUSED):
            return "bot.game_already_running", {}
        session = create_session(chat_id)
        store.save(session)
        logger.info(f"Chat {chat_id}: new session {session.id}")
        return "bot.welcome", {}

    await _run_for_chat(update, action)


async def join_command(update: Update, context) -> None:
    """Handle /join command."""
    user = update.effective_user
    name = user.full_name or user.username or str(user.id)

    def action(chat_id: int) -> Reply:
        store = get_engine().store
        session = store.load(chat_id)
        if session is None:
            return "bot.no_session", {}
        result = join(session, user.id, name)
        if result == JoinResult.CLOSED:
            return "bot.join_closed", {}
        if result == JoinResult.ALREADY_JOINED:
            return "bot.already_joined", {"name": name}
        store.save(session)
        return "bot.joined", {"name": name}

    await _run_for_chat(update, action)


async def prepare_command(update: Update, context) -> None:
    """Handle /prepare command: build the question pool for the session."""
    if not await _require_admin(update):
        return

    def action(chat_id: int) -> Reply:
        engine = get_engine()
        session = engine.store.load(chat_id)
        if session is None:
            return "bot.no_session", {}
        if not session.players:
            return "bot.no_players", {}
        engine.messenger.send(chat_id, texts.get(session.language, "bot.pool_preparing"))
        try:
            count = get_question_manager().prepare_pool(session)
        except GameError:
            return "bot.game_already_running", {}
        except QuestionPoolError as e:
            return "bot.pool_failure", {"reason": e.message}
        return "bot.pool_ready", {"count": count}

    await _run_for_chat(update, action)


async def begin_command(update: Update, context) -> None:
    """Handle /begin command: start the prepared game."""
    if not await _require_admin(update):
        return

    def action(chat_id: int) -> Reply:
        engine = get_engine()
        session = engine.store.load(chat_id)
        if session is None:
            return "bot.no_session", {}
        if engine.start_game(session):
            from tasks.question_refill import schedule_refill
            schedule_refill(chat_id)
        return None

    await _run_for_chat(update, action)


def _session_action(method_name: str) -> Callable[[int], Reply]:
    def action(chat_id: int) -> Reply:
        engine = get_engine()
        session = engine.store.load(chat_id)
        if session is None:
            return "bot.no_session", {}
        getattr(engine, method_name)(session)
        return None
    return action


async def pause_command(update: Update, context) -> None:
    """Handle /pause command."""
    if await _require_admin(update):
        await _run_for_chat(update, _session_action("pause_game"))


async def resume_command(update: Update, context) -> None:
    """Handle /resume command."""
    if await _require_admin(update):
        await _run_for_chat(update, _session_action("resume_game"))


async def stop_command(update: Update, context) -> None:
    """Handle /stop command."""
    if await _require_admin(update):
        await _run_for_chat(update, _session_action("stop_game"))


async def standings_command(update: Update, context) -> None:
    """Handle /standings command."""
    chat_id = update.effective_chat.id

    def build() -> Optional[str]:
        engine = get_engine()
        session = engine.store.load(chat_id)
        if session is None:
            return None
        return engine.standings_text(session)

    text = await asyncio.to_thread(build)
    if text is None:
        language = await asyncio.to_thread(_language, chat_id)
        text = texts.get(language, "bot.no_session")
    await update.message.reply_text(text)


async def schedule_command(update: Update, context) -> None:
    """Handle /schedule command: show the daily game schedule."""
    await _run_for_chat(update, lambda chat_id: get_game_scheduler().status(chat_id))


async def help_command(update: Update, context) -> None:
    """Handle /help command."""
    language = await asyncio.to_thread(_language, update.effective_chat.id)
    await update.message.reply_text(texts.get(language, "bot.help"))


async def answer_handler(update: Update, context) -> None:
    """Feed group text messages to the running game as answers."""
    if not update.message or not update.message.text or update.effective_user is None:
        return

    user_id = update.effective_user.id
    text = update.message.text

    def action(chat_id: int) -> Reply:
        engine = get_engine()
        session = engine.store.load(chat_id)
        if session is None or not session.is_playing:
            return None
        engine.submit_answer(session, user_id, text)
        return None

    await _run_for_chat(update, action)


def main() -> None:
    """Main function to start the bot."""
    try:
        # Validate configuration
        config.config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise ConfigurationError(str(e))

    if not config.config.TELEGRAM_ADMIN_IDS:
        logger.warning("TELEGRAM_ADMIN_IDS is empty, admin commands are open to everyone")

    from database.session import get_db_session
    get_db_session().create_tables()
    get_engine()

    # Create application
    application = Application.builder().token(config.config.TELEGRAM_BOT_TOKEN).build()

    # Register handlers
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("join", join_command))
    application.add_handler(CommandHandler("prepare", prepare_command))
    application.add_handler(CommandHandler("begin", begin_command))
    application.add_handler(CommandHandler("pause", pause_command))
    application.add_handler(CommandHandler("resume", resume_command))
    application.add_handler(CommandHandler("stop", stop_command))
    application.add_handler(CommandHandler("standings", standings_command))
    application.add_handler(CommandHandler("schedule", schedule_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, answer_handler))

    # Start bot
    logger.info("Starting Strong Link Bot...")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
