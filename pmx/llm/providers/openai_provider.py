"""OpenAI LLM provider implementation."""

from typing import Any, Dict, List, Optional

import openai

from pmx.config import DEFAULT_MODEL
from pmx.debug_logger import get_logger
from .base import LLMProvider


class OpenAIProvider(LLMProvider):
    """OpenAI (and OpenAI-compatible) chat completions provider."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, temperature: float = 0.1):
        super().__init__()
        self.name = "openai"
        self.api_key = api_key or ""
        self.base_url = base_url
        self.temperature = temperature
        self._client = None

    def _get_client(self):
        """Lazy initialization of the OpenAI client."""
        if self._client is None:
            kwargs: Dict[str, Any] = {"api_key": self.api_key or None}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = openai.OpenAI(**kwargs)
        return self._client

    def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """Send chat request to OpenAI."""
        debug_logger = get_logger()
        model_name = model or DEFAULT_MODEL

        request_params: Dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "temperature": float(kwargs.get("temperature", self.temperature)),
        }
        if tools:
            request_params["tools"] = tools
            request_params["tool_choice"] = "auto"

        debug_logger.log_llm_request(model_name, messages, tools)

        try:
            response = self._get_client().chat.completions.create(**request_params)
        except openai.OpenAIError as e:
            debug_logger.log("llm", "OPENAI_ERROR", {"error": str(e)}, "ERROR")
            return {"error": f"OpenAI API error: {e}"}

        if not response.choices:
            return {"error": "OpenAI API error: response contained no choices"}
        message_content = response.choices[0].message

        result_message: Dict[str, Any] = {
            "role": "assistant",
            "content": message_content.content or "",
        }
        if message_content.tool_calls:
            result_message["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.function.name,
                        "arguments": tc.function.arguments,
                    },
                }
                for tc in message_content.tool_calls
            ]

        usage = response.usage
        result = {
            "message": result_message,
            "done": True,
            "usage": {
                "prompt": usage.prompt_tokens if usage else 0,
                "completion": usage.completion_tokens if usage else 0,
                "total": usage.total_tokens if usage else 0,
            },
        }
        debug_logger.log_llm_response(model_name, result)
        return result

    def validate_config(self) -> bool:
        """An API key is required unless a custom base URL is configured."""
        return bool(self.api_key or self.base_url)
