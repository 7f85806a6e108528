"""Turns inbound error strings into what an error item displays."""

import json
from typing import Any, Callable, Dict, List

from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

Translator = Callable[[str], str]

API_KEY_HINT = "Consider creating an api key at https://platform.openai.com/account/api-keys"

# Recognized error categories and the guidance lines shown instead of them
ERROR_TEMPLATES: Dict[str, List[str]] = {
    "UNAUTHORIZED": [
        "UNAUTHORIZED",
        "Please login at https://chatgpt.com first",
        "And refresh this page or type you question again",
        "",
        API_KEY_HINT,
    ],
    "CLOUDFLARE": [
        "OpenAI Security Check Required",
        "Please open https://chatgpt.com",
        "And refresh this page or type you question again",
        "",
        API_KEY_HINT,
    ],
}


def identity(text: str) -> str:
    return text


def format_error(error: Any, translate: Translator = identity) -> str:
    """Format an inbound ``error`` value for display.

    Known categories expand to their translated guidance lines. Strings that
    look like serialized JSON are re-serialized with a 2-space indent. Anything
    else is passed through (stringified if it is not already text).
    """
    if isinstance(error, str) and error in ERROR_TEMPLATES:
        return "\n".join(translate(line) if line else "" for line in ERROR_TEMPLATES[error])

    if not isinstance(error, str):
        return str(error)

    if error.lstrip().startswith("{"):
        try:
            return json.dumps(json.loads(error), indent=2, ensure_ascii=False)
        except json.JSONDecodeError:
            logger.debug("Error text looks like JSON but does not parse; showing verbatim")
    return translate(error)
