import os
from dataclasses import dataclass

import yaml

from devlib import activity
from devlib.errors import ConfigurationError


DEFAULT_SITE_URL = "https://devlog-digest.example.com"
DEFAULT_FEED_TITLE = "Dev Log"
DEFAULT_FEED_DESCRIPTION = "Weekly dev digests from GitHub activity"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_WORD_CEILING = 600


#============================================
def get_repo_root() -> str:
	"""
	Return repository root based on this module location.
	"""
	module_dir = os.path.dirname(os.path.abspath(__file__))
	pipeline_dir = os.path.dirname(module_dir)
	repo_root = os.path.dirname(pipeline_dir)
	return repo_root


#============================================
def resolve_settings_path(path_text: str) -> str:
	"""
	Resolve settings path against cwd first, then repo root.
	"""
	if os.path.isabs(path_text):
		return path_text
	cwd_candidate = os.path.abspath(path_text)
	if os.path.isfile(cwd_candidate):
		return cwd_candidate
	repo_root = get_repo_root()
	repo_candidate = os.path.join(repo_root, path_text)
	return os.path.abspath(repo_candidate)


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load YAML settings dict and return it with resolved path.
	"""
	resolved_path = resolve_settings_path(path_text)
	if not os.path.isfile(resolved_path):
		return {}, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle.read())
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise ConfigurationError(f"Settings file must contain a mapping: {resolved_path}")
	return data, resolved_path


#============================================
def get_nested_value(settings: dict, keys: list[str], default_value):
	"""
	Read nested mapping value by key path.
	"""
	current = settings
	for key in keys:
		if not isinstance(current, dict):
			return default_value
		if key not in current:
			return default_value
		current = current[key]
	return current


#============================================
def get_setting_str(settings: dict, keys: list[str], default_value: str) -> str:
	"""
	Read a string setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	return str(value).strip()


#============================================
def get_setting_int(settings: dict, keys: list[str], default_value: int) -> int:
	"""
	Read an integer setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	try:
		return int(value)
	except (TypeError, ValueError) as error:
		raise ConfigurationError(f"Invalid integer for setting path {'.'.join(keys)}: {value}") from error


#============================================
def get_setting_float(settings: dict, keys: list[str], default_value: float) -> float:
	"""
	Read a float setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	try:
		return float(value)
	except (TypeError, ValueError) as error:
		raise ConfigurationError(f"Invalid number for setting path {'.'.join(keys)}: {value}") from error


#============================================
def get_setting_bool(settings: dict, keys: list[str], default_value: bool) -> bool:
	"""
	Read a boolean setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if isinstance(value, bool):
		return value
	if isinstance(value, str):
		text = value.strip().lower()
		if text in {"1", "true", "yes", "on"}:
			return True
		if text in {"0", "false", "no", "off"}:
			return False
		raise ConfigurationError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")
	if isinstance(value, int):
		return value != 0
	if value is None:
		return default_value
	raise ConfigurationError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")


#============================================
def get_enabled_llm_transport(settings: dict) -> str:
	"""
	Resolve exactly one enabled LLM provider from settings.
	"""
	providers = get_nested_value(settings, ["llm", "providers"], {})
	if not isinstance(providers, dict):
		raise ConfigurationError("Invalid settings: llm.providers must be a mapping.")

	enabled = []
	for provider_name, provider_config in providers.items():
		if not isinstance(provider_config, dict):
			continue
		enabled_flag = get_setting_bool(
			{"provider": {"enabled": provider_config.get("enabled", False)}},
			["provider", "enabled"],
			False,
		)
		if enabled_flag:
			enabled.append(provider_name)

	if len(enabled) > 1:
		raise ConfigurationError(
			"Only one LLM provider may be enabled in settings.yaml. "
			+ f"Enabled providers: {', '.join(enabled)}"
		)
	if len(enabled) == 1:
		return enabled[0]
	# the hosted OpenAI backend is the default when nothing is configured
	return "openai"


#============================================
def get_llm_provider_model(settings: dict, provider_name: str) -> str:
	"""
	Read model for one provider from settings.
	"""
	model_value = get_setting_str(
		settings,
		["llm", "providers", provider_name, "model"],
		"",
	)
	if model_value:
		return model_value
	model_value = get_setting_str(settings, ["llm", "model"], "")
	if model_value:
		return model_value
	if provider_name == "openai":
		return DEFAULT_OPENAI_MODEL
	raise ConfigurationError(
		f"No model configured for LLM provider {provider_name}. "
		+ f"Set llm.providers.{provider_name}.model in settings.yaml."
	)


#============================================
def parse_repositories(settings: dict) -> tuple:
	"""
	Read the tracked repository list from settings.
	"""
	entries = get_nested_value(settings, ["repositories"], [])
	if entries is None:
		return ()
	if not isinstance(entries, list):
		raise ConfigurationError("Invalid settings: repositories must be a list.")
	repos = []
	for entry in entries:
		if not isinstance(entry, dict):
			raise ConfigurationError(f"Invalid repository entry: {entry!r}")
		owner = str(entry.get("owner", "")).strip()
		repo = str(entry.get("repo", "")).strip()
		if not owner or not repo:
			raise ConfigurationError(f"Repository entry needs owner and repo: {entry!r}")
		description = str(entry.get("description") or "").strip() or None
		repos.append(activity.RepoRef(owner=owner, repo=repo, description=description))
	return tuple(repos)


#============================================
@dataclass(frozen=True)
class DigestConfig:
	"""
	Resolved settings for one pipeline run or API process.
	"""

	repositories: tuple = ()
	github_token: str = ""
	llm_transport: str = "openai"
	llm_model: str = DEFAULT_OPENAI_MODEL
	llm_temperature: float = DEFAULT_TEMPERATURE
	llm_base_url: str = ""
	word_ceiling: int = DEFAULT_WORD_CEILING
	openai_api_key: str = ""
	notion_api_key: str = ""
	notion_parent_id: str = ""
	notion_parent_is_database: bool = False
	site_url: str = DEFAULT_SITE_URL
	feed_title: str = DEFAULT_FEED_TITLE
	feed_description: str = DEFAULT_FEED_DESCRIPTION
	cron_secret: str = ""
	quiet_week_template: str = "quiet_week.md"

	#============================================
	def require(self, *names: str) -> None:
		"""
		Raise ConfigurationError naming every empty required field.
		"""
		missing = [name for name in names if not getattr(self, name)]
		if missing:
			raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


#============================================
def _pick(environ: dict, env_name: str, settings: dict, keys: list[str], default_value: str = "") -> str:
	"""
	Prefer a non-empty environment variable over the settings file value.
	"""
	env_value = str(environ.get(env_name, "") or "").strip()
	if env_value:
		return env_value
	return get_setting_str(settings, keys, default_value)


#============================================
def build_digest_config(settings: dict, environ: dict | None = None) -> DigestConfig:
	"""
	Combine YAML settings and environment variables into one DigestConfig.
	"""
	if environ is None:
		environ = dict(os.environ)
	transport = get_enabled_llm_transport(settings)
	if transport not in {"openai", "ollama"}:
		raise ConfigurationError(f"Unsupported llm transport in settings: {transport}")
	parent_type = _pick(environ, "NOTION_PARENT_TYPE", settings, ["notion", "parent_type"], "page")
	parent_type = parent_type.lower()
	if parent_type not in {"page", "database"}:
		raise ConfigurationError(f"notion.parent_type must be page or database, got {parent_type}")
	site_url = _pick(environ, "SITE_URL", settings, ["site", "url"], DEFAULT_SITE_URL)
	vercel_host = str(environ.get("VERCEL_URL", "") or "").strip()
	if vercel_host:
		site_url = f"https://{vercel_host}"
	word_ceiling = get_setting_int(settings, ["llm", "word_ceiling"], DEFAULT_WORD_CEILING)
	if word_ceiling < 1:
		raise ConfigurationError("llm.word_ceiling must be >= 1")
	config = DigestConfig(
		repositories=parse_repositories(settings),
		github_token=_pick(environ, "GITHUB_TOKEN", settings, ["github", "token"]),
		llm_transport=transport,
		llm_model=get_llm_provider_model(settings, transport),
		llm_temperature=get_setting_float(settings, ["llm", "temperature"], DEFAULT_TEMPERATURE),
		llm_base_url=get_setting_str(settings, ["llm", "providers", transport, "base_url"], ""),
		word_ceiling=word_ceiling,
		openai_api_key=_pick(environ, "OPENAI_API_KEY", settings, ["llm", "providers", "openai", "api_key"]),
		notion_api_key=_pick(environ, "NOTION_API_KEY", settings, ["notion", "api_key"]),
		notion_parent_id=_pick(environ, "NOTION_BLOG_PARENT_ID", settings, ["notion", "parent_id"]),
		notion_parent_is_database=(parent_type == "database"),
		site_url=site_url.rstrip("/"),
		feed_title=get_setting_str(settings, ["site", "feed_title"], DEFAULT_FEED_TITLE),
		feed_description=get_setting_str(settings, ["site", "feed_description"], DEFAULT_FEED_DESCRIPTION),
		cron_secret=_pick(environ, "CRON_SECRET", settings, ["api", "cron_secret"]),
		quiet_week_template=get_setting_str(settings, ["digest", "quiet_week_template"], "quiet_week.md"),
	)
	return config
