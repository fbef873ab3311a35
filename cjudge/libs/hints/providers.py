import logging

import requests


logger = logging.getLogger(__name__)


MAX_OUTPUT_TOKENS = 1024


class HintProvider:
    """A text generation backend: prompt in, text out."""

    name = ''

    def __init__(self, model: str, *, timeout: float = 20, temperature: float = 0.7):
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    @property
    def available(self) -> bool:
        return True

    def generate(self, prompt: str) -> str:
        raise NotImplementedError

    def _post(self, url: str, payload: dict, headers: dict | None = None) -> dict:
        resp = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()


class GeminiProvider(HintProvider):
    name = 'gemini'

    def __init__(self, api_key: str, model: str, *, base_url: str, **kwargs):
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')

    @property
    def available(self):
        return bool(self.api_key)

    def generate(self, prompt):
        data = self._post(
            f'{self.base_url}/models/{self.model}:generateContent',
            {
                'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
                'generationConfig': {
                    'temperature': self.temperature,
                    'topP': 0.95,
                    'topK': 40,
                    'maxOutputTokens': MAX_OUTPUT_TOKENS,
                },
            },
            headers={'x-goog-api-key': self.api_key},
        )
        parts = data['candidates'][0]['content']['parts']
        return ''.join(part.get('text', '') for part in parts)


class GroqProvider(HintProvider):
    """Any OpenAI compatible chat completions endpoint, Groq by default."""

    name = 'groq'

    def __init__(self, api_key: str, model: str, *, base_url: str, **kwargs):
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')

    @property
    def available(self):
        return bool(self.api_key)

    def generate(self, prompt):
        data = self._post(
            f'{self.base_url}/chat/completions',
            {
                'model': self.model,
                'messages': [{'role': 'user', 'content': prompt}],
                'temperature': self.temperature,
                'max_tokens': MAX_OUTPUT_TOKENS,
                'top_p': 0.95,
                'stream': False,
            },
            headers={'Authorization': f'Bearer {self.api_key}'},
        )
        return data['choices'][0]['message']['content'] or ''


class OllamaProvider(HintProvider):
    name = 'ollama'

    def __init__(self, base_url: str, model: str, **kwargs):
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip('/')

    @property
    def available(self):
        return bool(self.base_url)

    def generate(self, prompt):
        data = self._post(
            f'{self.base_url}/api/generate',
            {
                'model': self.model,
                'prompt': prompt,
                'stream': False,
                'options': {
                    'num_predict': MAX_OUTPUT_TOKENS,
                    'temperature': self.temperature,
                },
            },
        )
        return data.get('response', '')
