"""
Chat-completion transports for digest generation.
"""

from __future__ import annotations

# Standard Library
import json
import urllib.error
import urllib.parse
import urllib.request

# PIP3 modules
import openai
from openai import OpenAI

# local repo modules
from devlib.errors import ConfigurationError
from devlib.errors import UpstreamAPIError


class OpenAIChatTransport:
	name = "OpenAI"

	def __init__(self, api_key: str, model: str, client=None) -> None:
		self.model = model
		self.client = client or OpenAI(api_key=api_key, max_retries=0)

	def generate_chat(
		self,
		system_message: str,
		user_message: str,
		*,
		temperature: float,
	) -> str:
		try:
			completion = self.client.chat.completions.create(
				model=self.model,
				messages=[
					{"role": "system", "content": system_message},
					{"role": "user", "content": user_message},
				],
				temperature=temperature,
			)
		except openai.OpenAIError as exc:
			status = getattr(exc, "status_code", None)
			raise UpstreamAPIError("OpenAI", status, str(exc)) from exc
		choices = getattr(completion, "choices", None) or []
		if not choices:
			return ""
		message = getattr(choices[0], "message", None)
		content = getattr(message, "content", None) or ""
		return content.strip()


class OllamaChatTransport:
	name = "Ollama"

	def __init__(
		self,
		model: str,
		base_url: str = "http://localhost:11434",
		timeout: int = 120,
	) -> None:
		self.model = model
		self.base_url = (base_url or "http://localhost:11434").rstrip("/")
		self.timeout = int(timeout)

	def _validated_chat_endpoint(self) -> str:
		"""
		Build and validate the Ollama chat endpoint URL.
		"""
		parsed = urllib.parse.urlparse(self.base_url)
		if parsed.scheme not in {"http", "https"}:
			raise ConfigurationError("Ollama base_url must use http or https.")
		if not parsed.netloc:
			raise ConfigurationError("Ollama base_url must include a host.")
		return urllib.parse.urljoin(self.base_url + "/", "api/chat")

	def generate_chat(
		self,
		system_message: str,
		user_message: str,
		*,
		temperature: float,
	) -> str:
		payload: dict[str, object] = {
			"model": self.model,
			"messages": [
				{"role": "system", "content": system_message},
				{"role": "user", "content": user_message},
			],
			"stream": False,
			"options": {"temperature": temperature},
		}
		request = urllib.request.Request(
			self._validated_chat_endpoint(),
			data=json.dumps(payload).encode("utf-8"),
			headers={"Content-Type": "application/json"},
			method="POST",
		)
		try:
			with urllib.request.urlopen(request, timeout=self.timeout) as response:  # nosec B310
				response_body = response.read()
		except urllib.error.HTTPError as exc:
			body = exc.read().decode("utf-8", errors="replace")
			raise UpstreamAPIError("Ollama", exc.code, body) from exc
		except (urllib.error.URLError, TimeoutError) as exc:
			reason = getattr(exc, "reason", None) or exc
			raise UpstreamAPIError("Ollama", None, f"unreachable at {self.base_url}: {reason}") from exc
		parsed = json.loads(response_body.decode("utf-8"))
		assistant_message = parsed.get("message", {}).get("content", "") or ""
		return assistant_message.strip()


#============================================
def describe_llm_execution_path(transport_name: str, model: str) -> str:
	"""
	Describe configured LLM transport for log lines.
	"""
	model_label = model or "auto"
	if transport_name == "ollama":
		return f"ollama(model={model_label})"
	if transport_name == "openai":
		return f"openai(model={model_label})"
	return transport_name


#============================================
def create_llm_transport(config) -> object:
	"""
	Create the chat transport selected by a DigestConfig.
	"""
	if config.llm_transport == "openai":
		config.require("openai_api_key")
		return OpenAIChatTransport(api_key=config.openai_api_key, model=config.llm_model)
	if config.llm_transport == "ollama":
		return OllamaChatTransport(model=config.llm_model, base_url=config.llm_base_url)
	raise ConfigurationError(f"Unsupported llm transport: {config.llm_transport}")
