import logging
from typing import Callable

import cjudge.config as app_config
from cjudge.libs.hints.prompts import build_prompt
from cjudge.libs.hints.providers import GeminiProvider, GroqProvider, HintProvider, OllamaProvider
from cjudge.model import Submission, Verdict


logger = logging.getLogger(__name__)


class HintUnavailable(Exception):
    pass


def non_empty_response(text: str) -> str:
    text = (text or '').strip()
    if not text:
        raise ValueError('empty response')
    return text


class HintDispatcher:
    """Tries the configured providers in priority order until one answers.

    A provider that raises, or whose answer the validator rejects, is
    skipped in favor of the next one.
    """

    def __init__(self, providers: list[HintProvider], validator: Callable[[str], str] = non_empty_response):
        self.providers = [provider for provider in providers if provider.available]
        self.validator = validator

    def generate(self, prompt: str) -> str:
        if not self.providers:
            raise HintUnavailable('No hint provider is configured')
        for provider in self.providers:
            try:
                return self.validator(provider.generate(prompt))
            except Exception:
                logger.warning(f'Hint provider {provider.name} failed, trying the next one', exc_info=True)
        raise HintUnavailable('All hint providers failed')

    def attach_hint(self, verdict: Verdict, sub: Submission) -> Verdict:
        """Set ``verdict.hint`` for a failed submission. Never raises."""
        try:
            prompt = build_prompt(sub, verdict)
            if prompt is None:
                return verdict
            verdict.hint = self.generate(prompt)
        except HintUnavailable as e:
            logger.warning(f'No hint for submission {sub.sub_id}: {e}')
        except Exception:
            logger.exception(f'Failed to generate hint for submission {sub.sub_id}')
        return verdict


def create_hint_dispatcher() -> HintDispatcher | None:
    if not app_config.HINTS_ENABLED:
        return None
    options = {'timeout': app_config.HINT_TIMEOUT, 'temperature': app_config.HINT_TEMPERATURE}
    dispatcher = HintDispatcher([
        GeminiProvider(app_config.GEMINI_API_KEY, app_config.GEMINI_MODEL, base_url=app_config.GEMINI_BASE_URL, **options),
        GroqProvider(app_config.GROQ_API_KEY, app_config.GROQ_MODEL, base_url=app_config.GROQ_BASE_URL, **options),
        OllamaProvider(app_config.OLLAMA_BASE_URL, app_config.OLLAMA_MODEL, **options),
    ])
    if dispatcher.providers:
        logger.info(f'Hint providers: {", ".join(provider.name for provider in dispatcher.providers)}')
    else:
        logger.warning('No hint provider is configured, verdicts will carry no hints')
    return dispatcher
