"""
Message catalog for chat output, Russian and English.
"""
from typing import Dict

from game.models import GameLanguage

_RUSSIAN: Dict[str, str] = {
    "bot.welcome": "Привет! Это Strong Link, интеллектуальная викторина на выбывание. "
                   "Используйте /join, чтобы участвовать.",
    "bot.help": "Доступные команды: /start, /join, /prepare, /begin, /pause, /resume, "
                "/standings, /schedule, /stop, /help.",
    "bot.not_admin": "Эта команда доступна только администраторам игры.",
    "bot.game_already_running": "Игра уже запущена в этом чате.",
    "bot.no_session": "Сейчас игра не настроена. Используйте /start.",
    "bot.pool_preparing": "Подготавливаем пул вопросов, подождите...",
    "bot.pool_ready": "Пул вопросов подготовлен: {count} вопросов.",
    "bot.pool_failure": "Не удалось подготовить пул вопросов: {reason}",
    "bot.joined": "{name} присоединился к игре.",
    "bot.already_joined": "{name}, вы уже участвуете в игре.",
    "bot.join_closed": "Игра уже идёт, присоединиться нельзя.",
    "bot.no_players": "Никто не присоединился к игре. Используйте /join, чтобы участвовать.",
    "bot.game_finished": "Эта игра уже завершена. Используйте /start, чтобы начать новую.",
    "game.start": "Игра Strong Link начинается! Тур {tour}: {topic}.",
    "game.round": "Раунд {round}/{rounds}. Вопрос для {player}:\n{question}\n\n"
                  "⏱️ У вас есть {timeout} секунд на ответ!",
    "game.correct": "Верно!",
    "game.incorrect": "Неверно. Правильный ответ: {answer}.",
    "game.timeout": "⏱️ Время вышло для {player}! Правильный ответ: {answer}",
    "game.eliminated": "Игрок {player} выбыл из борьбы за медали.",
    "game.tour_complete": "Тур {tour} завершён. Следующий тур: {topic}",
    "game.tour_pause": "⏸️ Следующий тур начнётся через {seconds} секунд.",
    "game.sudden_death": "⚡ Внезапная смерть! {players} набрали одинаковое количество очков. "
                         "Задаём вопросы по кругу до разрыва.",
    "game.sudden_death_round": "⚡ Внезапная смерть. Вопрос для {player}:\n{question}\n\n"
                               "⏱️ У вас есть {timeout} секунд на ответ!",
    "game.sudden_death_resolved": "✅ Внезапная смерть завершена! Места распределены.",
    "game.tour_summary": "📊 Тур {tour} завершён! Итоги:",
    "game.points": "очков",
    "game.standings_header": "Текущие результаты:",
    "game.status_active": "(в игре)",
    "game.status_eliminated": "(выбыл)",
    "game.paused": "⏸️ Игра приостановлена.",
    "game.resumed": "▶️ Игра продолжается!",
    "game.not_paused": "Игра не на паузе.",
    "game.cannot_pause": "Сейчас нельзя поставить игру на паузу.",
    "game.stopped": "Игра остановлена администратором.",
    "game.completed": "Игра завершена. Победитель: {player}!",
    "game.completed_no_winner": "Игра завершена без победителя.",
    "game.not_enough_players": "В игре должен быть хотя бы один игрок. Используйте /join для участия.",
    "game.no_question_pool": "Подготовьте пул вопросов перед стартом игры.",
    "game.answer_ignored": "Сейчас отвечает другой игрок.",
    "schedule.lobby_open": "🎮 Запланированная игра начинается!\n\nИспользуйте /join, чтобы присоединиться.\n"
                           "Игра автоматически начнётся через {minutes} минут, если присоединится хотя бы 1 игрок.",
    "schedule.no_players": "⏰ Время вышло! Никто не присоединился к запланированной игре. Игра отменена.",
    "schedule.auto_start": "⏰ Время вышло! Игра начинается с {players} игроком(ами)!",
    "schedule.disabled": "⚙️ Запланированные игры отключены в конфигурации бота.",
    "schedule.waiting": "⏰ Запланированная игра активна!\n\nИгроков: {players}\n"
                        "Автостарт через: {minutes} мин.\n\nИспользуйте /join, чтобы присоединиться!",
    "schedule.info": "📅 Расписание игр\n\n🕐 Время начала: {time} UTC ежедневно\n"
                     "⏱️ Время ожидания: {wait} минут\n\n⏰ Следующая игра через: {hours}ч {minutes}мин\n"
                     "📍 Точное время: {next} UTC",
}

_ENGLISH: Dict[str, str] = {
    "bot.welcome": "Welcome to Strong Link, an elimination quiz for your group! "
                   "Use /join to participate.",
    "bot.help": "Available commands: /start, /join, /prepare, /begin, /pause, /resume, "
                "/standings, /schedule, /stop, /help.",
    "bot.not_admin": "This command is restricted to game administrators.",
    "bot.game_already_running": "A game is already running in this chat.",
    "bot.no_session": "No game is configured in this chat. Use /start.",
    "bot.pool_preparing": "Preparing the question pool. Please wait...",
    "bot.pool_ready": "Question pool prepared: {count} questions.",
    "bot.pool_failure": "Failed to prepare question pool: {reason}",
    "bot.joined": "{name} joined the game.",
    "bot.already_joined": "{name}, you are already in the game.",
    "bot.join_closed": "The game is already running, joining is closed.",
    "bot.no_players": "No one has joined the game yet. Use /join to participate.",
    "bot.game_finished": "This game has already finished. Use /start to set up a new one.",
    "game.start": "Strong Link is starting! Tour {tour}: {topic}.",
    "game.round": "Round {round}/{rounds}. Question for {player}:\n{question}\n\n"
                  "⏱️ You have {timeout} seconds to answer!",
    "game.correct": "Correct!",
    "game.incorrect": "Incorrect. The correct answer is {answer}.",
    "game.timeout": "⏱️ Time's up for {player}! The correct answer was: {answer}",
    "game.eliminated": "Player {player} has been eliminated from medal contention.",
    "game.tour_complete": "Tour {tour} complete. Next tour: {topic}",
    "game.tour_pause": "⏸️ The next tour starts in {seconds} seconds.",
    "game.sudden_death": "⚡ Sudden Death! {players} are tied. "
                         "We'll ask questions in turns until the tie is broken.",
    "game.sudden_death_round": "⚡ Sudden Death. Question for {player}:\n{question}\n\n"
                               "⏱️ You have {timeout} seconds to answer!",
    "game.sudden_death_resolved": "✅ Sudden Death complete! Rankings resolved.",
    "game.tour_summary": "📊 Tour {tour} complete! Results:",
    "game.points": "points",
    "game.standings_header": "Current standings:",
    "game.status_active": "(in play)",
    "game.status_eliminated": "(eliminated)",
    "game.paused": "⏸️ The game is paused.",
    "game.resumed": "▶️ The game continues!",
    "game.not_paused": "The game is not paused.",
    "game.cannot_pause": "The game cannot be paused right now.",
    "game.stopped": "The game has been stopped by an administrator.",
    "game.completed": "Game over. Winner: {player}!",
    "game.completed_no_winner": "Game over. There is no winner.",
    "game.not_enough_players": "At least one player must join. Use /join to participate.",
    "game.no_question_pool": "Prepare a question pool before starting the game.",
    "game.answer_ignored": "Another player is answering right now.",
    "schedule.lobby_open": "🎮 Scheduled game is starting!\n\nUse /join to participate.\n"
                           "The game will automatically begin in {minutes} minutes if at least 1 player joins.",
    "schedule.no_players": "⏰ Time's up! No one joined the scheduled game. Game cancelled.",
    "schedule.auto_start": "⏰ Time's up! Starting game with {players} player(s)!",
    "schedule.disabled": "⚙️ Scheduled games are disabled in bot configuration.",
    "schedule.waiting": "⏰ Scheduled game is active!\n\nPlayers: {players}\n"
                        "Auto-start in: {minutes} min.\n\nUse /join to participate!",
    "schedule.info": "📅 Game Schedule\n\n🕐 Start time: {time} UTC daily\n"
                     "⏱️ Wait time: {wait} minutes\n\n⏰ Next game in: {hours}h {minutes}m\n"
                     "📍 Exact time: {next} UTC",
}


class Texts:
    """Localized message lookup. Unknown keys come back unchanged."""

    def __init__(self):
        self._catalog = {
            GameLanguage.RUSSIAN: _RUSSIAN,
            GameLanguage.ENGLISH: _ENGLISH,
        }

    def get(self, language: GameLanguage, key: str, **kwargs) -> str:
        pack = self._catalog.get(language) or self._catalog[GameLanguage.ENGLISH]
        template = pack.get(key)
        if template is None:
            return key
        return template.format(**kwargs) if kwargs else template


texts = Texts()
