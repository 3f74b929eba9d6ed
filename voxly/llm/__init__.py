from .agent import LLMAgent  # noqa
from .base import LLMProvider  # noqa
