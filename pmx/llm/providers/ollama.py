"""Ollama LLM provider implementation."""

import json
from typing import Any, Dict, List, Optional

import requests

from pmx.config import DEFAULT_MODEL, DEFAULT_OLLAMA_BASE_URL
from pmx.debug_logger import get_logger
from .base import LLMProvider


REQUEST_TIMEOUT = 600


def _to_ollama_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Ollama expects tool-call arguments as objects, not JSON strings."""
    converted = []
    for message in messages:
        msg = dict(message)
        if msg.get("tool_calls"):
            calls = []
            for call in msg["tool_calls"]:
                function = dict(call.get("function", {}))
                arguments = function.get("arguments")
                if isinstance(arguments, str):
                    try:
                        function["arguments"] = json.loads(arguments) if arguments.strip() else {}
                    except json.JSONDecodeError:
                        function["arguments"] = {"raw": arguments}
                calls.append({"function": function})
            msg["tool_calls"] = calls
        msg.pop("tool_call_id", None)
        converted.append(msg)
    return converted


class OllamaProvider(LLMProvider):
    """Ollama provider using the native /api/chat endpoint."""

    def __init__(self, base_url: Optional[str] = None, temperature: float = 0.1):
        super().__init__()
        self.name = "ollama"
        self.base_url = (base_url or DEFAULT_OLLAMA_BASE_URL).rstrip("/")
        self.temperature = temperature

    def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """Send chat request to Ollama."""
        debug_logger = get_logger()
        model_name = model or DEFAULT_MODEL
        url = f"{self.base_url}/api/chat"

        payload: Dict[str, Any] = {
            "model": model_name,
            "messages": _to_ollama_messages(messages),
            "stream": False,
            "options": {"temperature": kwargs.get("temperature", self.temperature)},
        }
        if tools:
            payload["tools"] = tools

        debug_logger.log_llm_request(model_name, messages, tools)

        try:
            resp = requests.post(url, json=payload, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            response = resp.json()
        except requests.exceptions.Timeout:
            return {"error": f"Ollama API timeout after {REQUEST_TIMEOUT}s"}
        except requests.exceptions.RequestException as e:
            debug_logger.log("llm", "OLLAMA_ERROR", {"error": str(e)}, "ERROR")
            return {"error": f"Ollama API error: {e}"}
        except ValueError as e:
            return {"error": f"Ollama API returned invalid JSON: {e}"}

        if not isinstance(response, dict):
            return {"error": "Ollama API returned an unexpected payload"}
        if "error" in response:
            return {"error": f"Ollama API error: {response['error']}"}

        message = response.get("message") or {}
        for call in message.get("tool_calls") or []:
            function = call.get("function", {})
            if isinstance(function.get("arguments"), dict):
                function["arguments"] = json.dumps(function["arguments"])

        if "prompt_eval_count" in response and "eval_count" in response:
            response["usage"] = {
                "prompt": response["prompt_eval_count"],
                "completion": response["eval_count"],
                "total": response["prompt_eval_count"] + response["eval_count"],
            }

        debug_logger.log_llm_response(model_name, response)
        return response

    def validate_config(self) -> bool:
        """Check that the Ollama server answers."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
        except requests.exceptions.RequestException:
            return False
        return response.status_code == 200
