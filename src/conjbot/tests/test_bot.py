"""Tests for Telegram bot handlers."""
import html
from unittest.mock import AsyncMock, Mock

import pytest
from faker import Faker
from telegram import Chat, Update, User as TelegramUser
from telegram.ext import CallbackContext

from conjbot.bot import (
    ERR_MSG_EMPTY_DECK,
    MAIN_MENU,
    TRAINER_KEY,
    TRAINING,
    get_trainer,
    handle_answer,
    handle_callback,
    handle_message,
    handle_reset_command,
    handle_start,
)
from conjbot.models.training_models import Phase
from conjbot.services.session_service import TrainerSession

fake = Faker()


@pytest.fixture
def update() -> Mock:
    """Create a mock Update object."""
    update = AsyncMock(spec=Update)
    update.update_id = fake.random_int()
    update.effective_user = Mock(spec=TelegramUser)
    update.effective_user.id = fake.random_int()
    update.effective_user.username = f"test_user_{fake.random_int()}"
    update.effective_chat = Mock(spec=Chat)
    update.effective_chat.id = fake.random_int()
    update.message = AsyncMock()
    update.message.text = ""
    update.callback_query = AsyncMock()
    update.callback_query.data = ""
    return update


@pytest.fixture
def context() -> Mock:
    """Create a mock CallbackContext object."""
    context = Mock(spec=CallbackContext)
    context.user_data = {}
    context.bot = AsyncMock()
    return context


def text_message(update: Mock, text: str) -> Mock:
    update.callback_query = None
    update.message.text = text
    return update


def sent_text(mock: AsyncMock, call: int = -1) -> str:
    return mock.call_args_list[call].args[0]


@pytest.mark.asyncio
async def test_start(update: Mock, context: Mock) -> None:
    """Test start command handler."""
    update.callback_query = None

    result = await handle_start(update, context)

    assert result == MAIN_MENU
    update.message.reply_text.assert_called_once()
    assert "Regular -ER verbs" in sent_text(update.message.reply_text)
    assert isinstance(context.user_data[TRAINER_KEY], TrainerSession)


@pytest.mark.asyncio
async def test_trainer_is_created_once(update: Mock, context: Mock) -> None:
    assert get_trainer(update, context) is get_trainer(update, context)


@pytest.mark.asyncio
async def test_start_leaves_running_session(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.start()
    update.callback_query = None

    assert await handle_start(update, context) == MAIN_MENU
    assert trainer.phase is Phase.SETUP


@pytest.mark.asyncio
async def test_start_training(update: Mock, context: Mock) -> None:
    update.callback_query.data = "start_training"

    result = await handle_callback(update, context)

    trainer = context.user_data[TRAINER_KEY]
    assert result == TRAINING
    assert trainer.phase is Phase.PRACTICE
    text = sent_text(update.callback_query.edit_message_text)
    assert trainer.current.verb in text
    assert "0/20" in text


@pytest.mark.asyncio
async def test_start_training_without_verbs(update: Mock, context: Mock) -> None:
    """Test that an empty selection shows an alert instead of a card."""
    get_trainer(update, context).select_no_verbs()
    update.callback_query.data = "start_training"

    result = await handle_callback(update, context)

    assert result == MAIN_MENU
    update.callback_query.answer.assert_called_once_with(text=ERR_MSG_EMPTY_DECK, show_alert=True)
    update.callback_query.edit_message_text.assert_not_called()
    assert context.user_data[TRAINER_KEY].phase is Phase.SETUP


@pytest.mark.asyncio
async def test_correct_answer(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.start()
    text_message(update, trainer.current.answer.upper())

    result = await handle_answer(update, context)

    assert result == TRAINING
    assert "Correct" in sent_text(update.message.reply_text)
    markup = update.message.reply_text.call_args.kwargs["reply_markup"]
    assert markup.inline_keyboard[0][0].callback_data == f"next_{trainer.instance}"
    assert trainer.timer_pending

    trainer.close()


@pytest.mark.asyncio
async def test_wrong_answer_is_escaped(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.start()
    expected = trainer.current.answer
    text_message(update, "<b>je</b>")

    result = await handle_answer(update, context)

    assert result == TRAINING
    text = sent_text(update.message.reply_text)
    assert "Not quite" in text
    assert "&lt;b&gt;je&lt;/b&gt;" in text
    assert html.escape(expected) in text
    assert not trainer.timer_pending


@pytest.mark.asyncio
async def test_answer_while_feedback_is_shown(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.start()
    trainer.submit("xyz")
    text_message(update, "again")

    assert await handle_answer(update, context) == TRAINING
    assert "Next" in sent_text(update.message.reply_text)
    assert trainer.session.total == 1


@pytest.mark.asyncio
async def test_next_sends_new_card_once(update: Mock, context: Mock) -> None:
    """Test that a second press on the same Next button is ignored."""
    trainer = get_trainer(update, context)
    trainer.start()
    trainer.submit("xyz")
    update.callback_query.data = f"next_{trainer.instance}"

    assert await handle_callback(update, context) == TRAINING
    assert await handle_callback(update, context) == TRAINING

    update.callback_query.edit_message_reply_markup.assert_called_once_with(reply_markup=None)
    context.bot.send_message.assert_called_once()
    assert context.bot.send_message.call_args.kwargs["chat_id"] == update.effective_chat.id


@pytest.mark.asyncio
async def test_last_answer_shows_results(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.set_session_length(10)
    trainer.start()
    for _ in range(9):
        trainer.submit(trainer.current.answer)
        trainer.advance()
    text_message(update, trainer.current.answer)

    result = await handle_answer(update, context)

    assert result == MAIN_MENU
    assert update.message.reply_text.call_count == 2
    results = sent_text(update.message.reply_text)
    assert "Session finished" in results
    assert "100%" in results
    markup = update.message.reply_text.call_args.kwargs["reply_markup"]
    assert markup.inline_keyboard[0][1].callback_data == "results_restart"


@pytest.mark.asyncio
async def test_restart_from_results(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.set_session_length(10)
    trainer.start()
    for _ in range(10):
        trainer.submit(trainer.current.answer)
        trainer.advance()
    assert trainer.phase is Phase.RESULTS
    update.callback_query.data = "results_restart"

    assert await handle_callback(update, context) == TRAINING
    assert trainer.phase is Phase.PRACTICE
    assert trainer.session.total == 0


@pytest.mark.asyncio
async def test_verb_toggle(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    assert "parler" in trainer.enabled_verbs
    update.callback_query.data = "verb_toggle_0"

    result = await handle_callback(update, context)

    assert result == MAIN_MENU
    assert "parler" not in trainer.enabled_verbs
    markup = update.callback_query.edit_message_text.call_args.kwargs["reply_markup"]
    assert markup.inline_keyboard[0][0].text.startswith("▫️")


@pytest.mark.asyncio
async def test_stage_and_length_buttons(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)

    update.callback_query.data = "stage_2"
    await handle_callback(update, context)
    update.callback_query.data = "length_30"
    await handle_callback(update, context)

    assert trainer.stage_index == 2
    assert trainer.session_length == 30
    assert "<b>30</b>" in sent_text(update.callback_query.edit_message_text)


@pytest.mark.asyncio
async def test_reset_progress(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.start()
    trainer.submit(trainer.current.answer)
    assert trainer.store.cards

    update.callback_query.data = "reset_confirm"
    await handle_callback(update, context)

    assert trainer.store.cards == {}
    assert "Progress deleted" in sent_text(update.callback_query.edit_message_text)

    trainer.close()


@pytest.mark.asyncio
async def test_reset_command_asks_first(update: Mock, context: Mock) -> None:
    update.callback_query = None

    assert await handle_reset_command(update, context) == MAIN_MENU
    markup = update.message.reply_text.call_args.kwargs["reply_markup"]
    assert markup.inline_keyboard[0][0].callback_data == "reset_confirm"


@pytest.mark.asyncio
async def test_message_outside_session(update: Mock, context: Mock) -> None:
    text_message(update, "je parle")

    assert await handle_message(update, context) == MAIN_MENU
    assert "/start" in sent_text(update.message.reply_text)
    assert context.user_data[TRAINER_KEY].session.total == 0


@pytest.mark.asyncio
async def test_old_start_button_during_practice(update: Mock, context: Mock) -> None:
    """Test that a start button of an earlier menu leaves the session alone."""
    trainer = get_trainer(update, context)
    trainer.start()
    card, instance = trainer.current, trainer.instance
    update.callback_query.data = "start_training"

    assert await handle_callback(update, context) == TRAINING

    update.callback_query.answer.assert_called_once_with()
    update.callback_query.edit_message_text.assert_not_called()
    assert trainer.current == card
    assert trainer.instance == instance


@pytest.mark.asyncio
@pytest.mark.parametrize("data", ["verbs_none", "verb_toggle_0"])
async def test_emptying_verbs_during_practice_shows_alert(update: Mock, context: Mock, data: str) -> None:
    trainer = get_trainer(update, context)
    trainer.set_enabled_verbs(["parler"])
    trainer.start()
    update.callback_query.data = data

    assert await handle_callback(update, context) == TRAINING

    update.callback_query.answer.assert_called_once_with(text=ERR_MSG_EMPTY_DECK, show_alert=True)
    assert trainer.enabled_verbs == ["parler"]
    assert trainer.phase is Phase.PRACTICE


@pytest.mark.asyncio
async def test_stage_change_during_practice_sends_new_card(update: Mock, context: Mock) -> None:
    """Test that the learner sees the card their next answer is graded against."""
    trainer = get_trainer(update, context)
    trainer.start()
    update.callback_query.data = "stage_4"

    assert await handle_callback(update, context) == TRAINING

    context.bot.send_message.assert_called_once()
    text = context.bot.send_message.call_args.kwargs["text"]
    assert "Write the conjugated form" in text
    assert f"{trainer.current.pronoun.value}</i> + <i>{trainer.current.verb}" in text


@pytest.mark.asyncio
async def test_verb_change_while_feedback_is_shown_keeps_card(update: Mock, context: Mock) -> None:
    trainer = get_trainer(update, context)
    trainer.start()
    trainer.submit("xyz")
    card = trainer.current
    update.callback_query.data = "verbs_all"

    assert await handle_callback(update, context) == TRAINING

    context.bot.send_message.assert_not_called()
    assert trainer.current == card


@pytest.mark.asyncio
async def test_verb_change_in_setup_sends_no_card(update: Mock, context: Mock) -> None:
    update.callback_query.data = "verbs_all"

    assert await handle_callback(update, context) == MAIN_MENU

    context.bot.send_message.assert_not_called()
