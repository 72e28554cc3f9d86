"""Monitoring configuration for the bot."""
from prometheus_client import Counter, Gauge, start_http_server

# Bot metrics
active_trainers = Gauge(
    "conjbot_active_trainers",
    "Number of trainer sessions currently held in memory",
)

# Learning metrics
answers_total = Counter(
    "conjbot_answers_total",
    "Total number of graded answers",
    ["result"],
)

sessions_started = Counter(
    "conjbot_sessions_started_total",
    "Total number of practice sessions started",
)

sessions_completed = Counter(
    "conjbot_sessions_completed_total",
    "Total number of sessions that reached the results screen",
    ["via"],
)

level_changes = Counter(
    "conjbot_level_changes_total",
    "Total number of card level promotions and demotions",
    ["direction"],
)

# Persistence metrics
progress_saves = Counter(
    "conjbot_progress_saves_total",
    "Total number of progress store writes",
)

progress_errors = Counter(
    "conjbot_progress_errors_total",
    "Total number of failed progress loads or saves",
    ["operation"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
