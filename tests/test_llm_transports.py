import io
import json
import os
import sys
import urllib.error
from types import SimpleNamespace

import openai
import pytest


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from devlib import llm_transports
from devlib.errors import ConfigurationError
from devlib.errors import UpstreamAPIError
from devlib.pipeline_settings import DigestConfig


#============================================
class FakeCompletions:
	def __init__(self, content):
		self.content = content
		self.kwargs = None

	def create(self, **kwargs):
		self.kwargs = kwargs
		message = SimpleNamespace(content=self.content)
		return SimpleNamespace(choices=[SimpleNamespace(message=message)])


#============================================
class FakeResponse(io.BytesIO):
	def __enter__(self):
		return self

	def __exit__(self, *exc_info):
		self.close()
		return False


#============================================
def test_openai_transport_sends_system_and_user_messages() -> None:
	"""
	The chat call carries both messages, the model and the temperature.
	"""
	completions = FakeCompletions("  # Title\n\nBody  \n")
	client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
	transport = llm_transports.OpenAIChatTransport(api_key="k", model="gpt-4o-mini", client=client)
	text = transport.generate_chat("persona", "prompt", temperature=0.7)
	assert text == "# Title\n\nBody"
	assert completions.kwargs["model"] == "gpt-4o-mini"
	assert completions.kwargs["temperature"] == 0.7
	assert completions.kwargs["messages"] == [
		{"role": "system", "content": "persona"},
		{"role": "user", "content": "prompt"},
	]


#============================================
def test_openai_transport_missing_content_is_empty() -> None:
	client = SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(None)))
	transport = llm_transports.OpenAIChatTransport(api_key="k", model="m", client=client)
	assert transport.generate_chat("s", "u", temperature=0.1) == ""


#============================================
def test_ollama_transport_posts_chat_payload(monkeypatch) -> None:
	"""
	Ollama receives a non-streaming chat request with the temperature option.
	"""
	seen = {}

	def fake_urlopen(request, timeout):
		seen["url"] = request.full_url
		seen["payload"] = json.loads(request.data.decode("utf-8"))
		seen["timeout"] = timeout
		body = json.dumps({"message": {"content": " Digest text "}}).encode("utf-8")
		return FakeResponse(body)

	monkeypatch.setattr(llm_transports.urllib.request, "urlopen", fake_urlopen)
	transport = llm_transports.OllamaChatTransport(model="llama3.2:3b", base_url="http://localhost:11434/")
	assert transport.generate_chat("s", "u", temperature=0.4) == "Digest text"
	assert seen["url"] == "http://localhost:11434/api/chat"
	assert seen["payload"]["stream"] is False
	assert seen["payload"]["options"] == {"temperature": 0.4}
	assert seen["timeout"] == 120


#============================================
def test_ollama_transport_maps_http_errors(monkeypatch) -> None:
	def fake_urlopen(request, timeout):
		raise urllib.error.HTTPError(request.full_url, 404, "Not Found", {}, io.BytesIO(b"model not found"))

	monkeypatch.setattr(llm_transports.urllib.request, "urlopen", fake_urlopen)
	transport = llm_transports.OllamaChatTransport(model="missing")
	with pytest.raises(UpstreamAPIError) as excinfo:
		transport.generate_chat("s", "u", temperature=0.4)
	assert excinfo.value.status == 404
	assert excinfo.value.body == "model not found"


#============================================
def test_ollama_transport_rejects_bad_scheme() -> None:
	transport = llm_transports.OllamaChatTransport(model="m", base_url="ftp://host")
	with pytest.raises(ConfigurationError):
		transport.generate_chat("s", "u", temperature=0.4)


#============================================
def test_create_llm_transport_selects_backend() -> None:
	"""
	The hosted backend needs an API key; the local one does not.
	"""
	with pytest.raises(ConfigurationError):
		llm_transports.create_llm_transport(DigestConfig(llm_transport="openai"))
	ollama = llm_transports.create_llm_transport(
		DigestConfig(llm_transport="ollama", llm_model="llama3.2:3b", llm_base_url="http://gpu:11434")
	)
	assert isinstance(ollama, llm_transports.OllamaChatTransport)
	assert ollama.base_url == "http://gpu:11434"
	hosted = llm_transports.create_llm_transport(DigestConfig(openai_api_key="sk-test"))
	assert isinstance(hosted, llm_transports.OpenAIChatTransport)
	assert hosted.model == "gpt-4o-mini"


#============================================
class FailingCompletions:
	def create(self, **kwargs):
		raise openai.OpenAIError("Incorrect API key provided")


#============================================
def test_openai_transport_wraps_sdk_errors() -> None:
	"""
	SDK failures surface as UpstreamAPIError with the SDK message.
	"""
	client = SimpleNamespace(chat=SimpleNamespace(completions=FailingCompletions()))
	transport = llm_transports.OpenAIChatTransport(api_key="bad", model="m", client=client)
	with pytest.raises(UpstreamAPIError) as excinfo:
		transport.generate_chat("s", "u", temperature=0.7)
	assert excinfo.value.service == "OpenAI"
	assert excinfo.value.status is None
	assert "Incorrect API key provided" in str(excinfo.value)


#============================================
def test_ollama_transport_wraps_connection_refused(monkeypatch) -> None:
	def fake_urlopen(request, timeout):
		raise urllib.error.URLError(ConnectionRefusedError(111, "Connection refused"))

	monkeypatch.setattr(llm_transports.urllib.request, "urlopen", fake_urlopen)
	transport = llm_transports.OllamaChatTransport(model="m", base_url="http://localhost:11434")
	with pytest.raises(UpstreamAPIError) as excinfo:
		transport.generate_chat("s", "u", temperature=0.4)
	assert excinfo.value.service == "Ollama"
	assert "unreachable at http://localhost:11434" in excinfo.value.body
	assert "Connection refused" in excinfo.value.body
