from .ask import ask_command, retry_command
from .info import config_command, default_command, providers_command, version_command
from .sessions import sessions_group

__all__ = [
    "ask_command",
    "retry_command",
    "providers_command",
    "config_command",
    "default_command",
    "version_command",
    "sessions_group",
]
