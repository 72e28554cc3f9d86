"""Main Telegram bot module."""
import html
import logging
from typing import List, Optional, Tuple

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import CallbackContext

from conjbot import monitoring
from conjbot.models.training_models import Phase, TrainerView
from conjbot.models.verb_bank import STAGES, VERB_BANK
from conjbot.services.progress_service import ProgressService
from conjbot.services.selector import EmptyDeckError
from conjbot.services.session_service import InvalidTransitionError, TrainerSession
from conjbot.services.timer import AsyncioScheduler

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
MAIN_MENU, TRAINING = range(2)

# Button texts
MENU = "🏠 Menu"
CHOOSE_VERBS = "📚 Verbs"
CHOOSE_STAGE = "🎚️ Stage"
CHOOSE_LENGTH = "⏱️ Session length"
START_TRAINING = "▶️ Start practice"
RESET_PROGRESS = "🗑️ Reset progress"
NEXT_CARD = "➡️ Next"

TRAINER_KEY = "trainer"

ERR_MSG_EMPTY_DECK = "Please select at least one verb first."


def msg_back_to(text: str) -> str: return f"🔙 {text}"


KB_BACK_TO_MENU = [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    elif update.message:
        txt = f" {update.message.text}"
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


def get_trainer(update: Update, context: CallbackContext) -> TrainerSession:
    """Trainer of the user, created with the stored progress on first use."""
    trainer = context.user_data.get(TRAINER_KEY)
    if trainer is not None:
        return trainer

    chat_id = update.effective_chat.id
    bot = context.bot
    scheduler = AsyncioScheduler()
    trainer = TrainerSession(progress=ProgressService(update.effective_user.id), scheduler=scheduler)

    async def send_next_card() -> None:
        await send_card(bot, chat_id, trainer.view())

    scheduler.on_fired = send_next_card
    context.user_data[TRAINER_KEY] = trainer
    monitoring.active_trainers.inc()
    return trainer


# Rendering

def setup_message(trainer: TrainerSession) -> Tuple[str, InlineKeyboardMarkup]:
    view = trainer.view()
    stage = view.stage
    pronouns = ", ".join(p.value for p in stage.pronouns)
    text = (
        "🇫🇷 <b>Regular -ER verbs: present tense</b>\n\n"
        f"Verbs: {len(trainer.enabled_verbs)} selected\n"
        f"Stage {view.stage_index + 1}: {stage.label}\n"
        f"Pronouns: {pronouns}\n"
        f"{'Hints on' if stage.hints else 'Hints off'} • "
        f"{'accents ignored' if stage.ignore_accents else 'accents required'}\n"
        f"Answers per session: {trainer.session_length}\n"
        f"Mastery at this stage: {view.mastery}%\n\n"
        "Two correct answers in a row raise a card's level, a mistake lowers it. "
        "Mistakes come back within the next cards and once more at the end."
    )
    keyboard = [
        [InlineKeyboardButton(CHOOSE_VERBS, callback_data="verbs"),
         InlineKeyboardButton(CHOOSE_STAGE, callback_data="stages")],
        [InlineKeyboardButton(CHOOSE_LENGTH, callback_data="lengths")],
        [InlineKeyboardButton(START_TRAINING, callback_data="start_training")],
        [InlineKeyboardButton(RESET_PROGRESS, callback_data="reset_progress")],
    ]
    return text, InlineKeyboardMarkup(keyboard)


def verbs_message(trainer: TrainerSession) -> Tuple[str, InlineKeyboardMarkup]:
    text = "Step 1: choose the verbs to practise.\nTip: start with 5 to 8 verbs and add more later."
    keyboard: List[List[InlineKeyboardButton]] = []
    row: List[InlineKeyboardButton] = []
    for index, entry in enumerate(VERB_BANK):
        mark = "✅" if entry.key in trainer.enabled_verbs else "▫️"
        row.append(InlineKeyboardButton(f"{mark} {entry.label}", callback_data=f"verb_toggle_{index}"))
        if len(row) == 2:
            keyboard.append(row)
            row = []
    if row:
        keyboard.append(row)
    keyboard.append([InlineKeyboardButton("All", callback_data="verbs_all"),
                     InlineKeyboardButton("None", callback_data="verbs_none")])
    keyboard.append(KB_BACK_TO_MENU)
    return text, InlineKeyboardMarkup(keyboard)


def stages_message(trainer: TrainerSession) -> Tuple[str, InlineKeyboardMarkup]:
    lines = ["Step 2: choose a stage.\n"]
    keyboard = []
    for index, stage in enumerate(STAGES):
        pronouns = ", ".join(p.value for p in stage.pronouns)
        lines.append(
            f"<b>Stage {index + 1}: {stage.label}</b>\n"
            f"Pronouns: {pronouns} • {'hints on' if stage.hints else 'hints off'} • "
            f"{'accents ignored' if stage.ignore_accents else 'accents required'}"
        )
        mark = "🔘" if index == trainer.stage_index else "⚪"
        keyboard.append([InlineKeyboardButton(f"{mark} Stage {index + 1}: {stage.label}", callback_data=f"stage_{index}")])
    keyboard.append(KB_BACK_TO_MENU)
    return "\n".join(lines), InlineKeyboardMarkup(keyboard)


def lengths_message(trainer: TrainerSession) -> Tuple[str, InlineKeyboardMarkup]:
    s = trainer.settings
    text = f"Step 3: answers in this session: <b>{trainer.session_length}</b>"
    lengths = list(range(s.min_session_length, s.max_session_length + 1, s.session_length_step))
    keyboard = [
        [InlineKeyboardButton(f"{'• ' if n == trainer.session_length else ''}{n}", callback_data=f"length_{n}")
         for n in lengths[i:i + 4]]
        for i in range(0, len(lengths), 4)
    ]
    keyboard.append(KB_BACK_TO_MENU)
    return text, InlineKeyboardMarkup(keyboard)


def card_message(view: TrainerView) -> str:
    title = "Review of mistakes" if view.phase is Phase.REVIEW else "Focus practice"
    text = (
        f"<i>{title}</i> · {view.session.total}/{view.session.target}\n\n"
        "Write the conjugated form:\n"
        f"<b><i>{view.card.pronoun.value}</i> + <i>{view.card.verb}</i></b>\n"
    )
    if view.stage.hints:
        text += f"\nHint: present tense • {'accents optional' if view.stage.ignore_accents else 'accents required'}"
    text += f"\nAccuracy: {view.session.accuracy}%"
    return text


def feedback_message(view: TrainerView, auto_advance_seconds: float) -> Tuple[str, InlineKeyboardMarkup]:
    feedback = view.feedback
    if feedback.ok:
        text = "✅ <b>Correct!</b> 🎉"
        if view.phase.is_active:
            text += f"\nNext card in {auto_advance_seconds:g} s, or press Next."
    else:
        text = (
            "❌ <b>Not quite.</b>\n"
            f"Your answer: <s>{html.escape(feedback.user)}</s>\n"
            f"Correct: <code>{html.escape(feedback.expected)}</code>\n"
            "(This card comes back at the end.)"
        )
    if view.phase is Phase.REVIEW and view.session.total == view.session.target:
        text += "\n\nNow let's review your mistakes."
    keyboard = []
    if view.phase.is_active:
        keyboard.append([InlineKeyboardButton(NEXT_CARD, callback_data=f"next_{view.instance}")])
    return text, InlineKeyboardMarkup(keyboard)


def results_message(view: TrainerView) -> Tuple[str, InlineKeyboardMarkup]:
    text = (
        "🏁 <b>Session finished</b>\n\n"
        f"Correct: <b>{view.session.correct}</b> / attempts: <b>{view.session.total}</b> "
        f"→ accuracy <b>{view.session.accuracy}%</b>\n"
        f"Mastery (current stage): <b>{view.mastery}%</b>\n"
        f"Mistakes left: <b>{view.wrong_count}</b>"
    )
    again = "🔁 Review mistakes" if view.wrong_count else "🔁 Practice again"
    keyboard = [[InlineKeyboardButton(msg_back_to("Settings"), callback_data="back_to_menu"),
                 InlineKeyboardButton(again, callback_data="results_restart")]]
    return text, InlineKeyboardMarkup(keyboard)


# Sending

async def send_card(bot: Bot, chat_id: int, view: TrainerView) -> None:
    """Send the current card as a new message."""
    if view.card is None:
        return
    try:
        await bot.send_message(chat_id=chat_id, text=card_message(view), parse_mode="HTML")
    except TelegramError as e:
        logger.warning(f"Error sending card to chat {chat_id}: {e}")


async def reply(update: Update, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
    """Edit the message of a pressed button, or answer a text message."""
    try:
        if update.callback_query:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
        else:
            await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")
    except TelegramError as e:
        logger.warning(f"Error sending message: {e}")


def state_for(trainer: TrainerSession) -> int:
    return TRAINING if trainer.phase.is_active else MAIN_MENU


# Handlers

async def handle_start(update: Update, context: CallbackContext) -> int:
    """Show the settings menu."""
    await log_received(update, "start")
    trainer = get_trainer(update, context)
    if trainer.phase is not Phase.SETUP:
        trainer.back_to_setup()
    text, markup = setup_message(trainer)
    await reply(update, text, markup)
    return MAIN_MENU


async def handle_reset_command(update: Update, context: CallbackContext) -> int:
    """Ask for confirmation before deleting all progress."""
    await log_received(update, "reset")
    trainer = get_trainer(update, context)
    await reply(update, *reset_confirmation())
    return state_for(trainer)


def reset_confirmation() -> Tuple[str, InlineKeyboardMarkup]:
    return (
        "Delete all learning progress?",
        InlineKeyboardMarkup([[InlineKeyboardButton("🗑️ Yes, delete", callback_data="reset_confirm"),
                               InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]]),
    )


async def start_training(update: Update, context: CallbackContext) -> int:
    trainer = get_trainer(update, context)
    if trainer.phase.is_active:
        # Start button of an older menu message
        logger.debug("Start ignored, a session is already running")
        await update.callback_query.answer()
        return state_for(trainer)
    try:
        trainer.start()
    except EmptyDeckError:
        await update.callback_query.answer(text=ERR_MSG_EMPTY_DECK, show_alert=True)
        return MAIN_MENU
    await update.callback_query.answer()
    await reply(update, card_message(trainer.view()))
    return TRAINING


async def handle_next(update: Update, context: CallbackContext, instance: int) -> int:
    trainer = get_trainer(update, context)
    if not trainer.advance(instance):
        logger.debug(f"Ignoring stale next for card instance {instance}")
        return state_for(trainer)
    await update.callback_query.edit_message_reply_markup(reply_markup=None)
    await send_card(context.bot, update.effective_chat.id, trainer.view())
    return TRAINING


async def handle_restart(update: Update, context: CallbackContext) -> int:
    trainer = get_trainer(update, context)
    try:
        trainer.restart()
    except EmptyDeckError:
        await update.callback_query.answer(text=ERR_MSG_EMPTY_DECK, show_alert=True)
        return MAIN_MENU
    except InvalidTransitionError as e:
        logger.debug(f"Restart ignored: {e}")
        return state_for(trainer)
    await reply(update, card_message(trainer.view()))
    return TRAINING


async def handle_deck_change(update: Update, context: CallbackContext) -> int:
    """Apply a verb or stage choice and show the card it may have replaced."""
    query = update.callback_query
    data = query.data
    trainer = get_trainer(update, context)
    shown = trainer.instance

    try:
        if data.startswith("verb_toggle_"):
            trainer.toggle_verb(VERB_BANK[int(data[len("verb_toggle_"):])].key)
        elif data == "verbs_all":
            trainer.select_all_verbs()
        elif data == "verbs_none":
            trainer.select_no_verbs()
        else:
            trainer.set_stage(int(data[len("stage_"):]))
    except EmptyDeckError:
        await query.answer(text=ERR_MSG_EMPTY_DECK, show_alert=True)
        return state_for(trainer)

    await query.answer()
    if data.startswith("stage_"):
        await reply(update, *stages_message(trainer))
    else:
        await reply(update, *verbs_message(trainer))
    if trainer.phase.is_active and trainer.instance != shown:
        await send_card(context.bot, update.effective_chat.id, trainer.view())
    return state_for(trainer)


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await log_received(update, "callback")

    data = query.data
    trainer = get_trainer(update, context)

    if data.startswith("next_"):
        await query.answer()
        return await handle_next(update, context, int(data[len("next_"):]))
    elif data == "start_training":
        return await start_training(update, context)
    elif data == "results_restart":
        await query.answer()
        return await handle_restart(update, context)
    elif data in ("verbs_all", "verbs_none") or data.startswith(("verb_toggle_", "stage_")):
        return await handle_deck_change(update, context)

    await query.answer()
    if data == "back_to_menu":
        return await handle_start(update, context)
    elif data == "verbs":
        await reply(update, *verbs_message(trainer))
    elif data == "stages":
        await reply(update, *stages_message(trainer))
    elif data == "lengths":
        await reply(update, *lengths_message(trainer))
    elif data.startswith("length_"):
        trainer.set_session_length(int(data[len("length_"):]))
        await reply(update, *lengths_message(trainer))
    elif data == "reset_progress":
        await reply(update, *reset_confirmation())
    elif data == "reset_confirm":
        trainer.reset_progress()
        text, markup = setup_message(trainer)
        await reply(update, "Progress deleted.\n\n" + text, markup)
    else:
        logger.debug(f"Unknown callback data: {data}")

    return state_for(trainer)


async def handle_answer(update: Update, context: CallbackContext) -> int:
    """Grade a typed answer."""
    await log_received(update, "answer")
    trainer = get_trainer(update, context)

    feedback = trainer.submit(update.message.text or "")
    if feedback is None:
        if trainer.phase.is_active:
            await update.message.reply_text(f"Press {NEXT_CARD} to continue.")
        else:
            await update.message.reply_text("Please start a session first, /start")
        return state_for(trainer)

    view = trainer.view()
    await reply(update, *feedback_message(view, trainer.settings.auto_advance_seconds))
    if view.phase is Phase.RESULTS:
        await reply(update, *results_message(view))
    return state_for(trainer)


async def handle_message(update: Update, context: CallbackContext) -> int:
    """Handle messages outside of a session."""
    trainer = get_trainer(update, context)
    if trainer.phase.is_active:
        return await handle_answer(update, context)
    await log_received(update, "message")
    await update.message.reply_text("Please start with /start")
    return state_for(trainer)
