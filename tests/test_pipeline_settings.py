import os
import sys

import pytest


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from devlib import pipeline_settings
from devlib.activity import RepoRef
from devlib.errors import ConfigurationError


#============================================
def test_load_settings_missing_file(tmp_path) -> None:
	"""
	Missing settings file should return empty settings.
	"""
	settings, resolved_path = pipeline_settings.load_settings(str(tmp_path / "missing.yaml"))
	assert settings == {}
	assert resolved_path.endswith("missing.yaml")


#============================================
def test_load_settings_reads_yaml(tmp_path) -> None:
	"""
	YAML settings should be parsed into nested mapping values.
	"""
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text(
		"repositories:\n"
		"  - owner: octo\n"
		"    repo: alpha\n"
		"    description: Fast parser\n"
		"  - owner: octo\n"
		"    repo: beta\n"
		"llm:\n"
		"  word_ceiling: 450\n",
		encoding="utf-8",
	)
	settings, _ = pipeline_settings.load_settings(str(settings_path))
	assert pipeline_settings.get_setting_int(settings, ["llm", "word_ceiling"], 600) == 450
	assert pipeline_settings.parse_repositories(settings) == (
		RepoRef("octo", "alpha", "Fast parser"),
		RepoRef("octo", "beta", None),
	)


#============================================
def test_load_settings_rejects_non_mapping(tmp_path) -> None:
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("- just\n- a list\n", encoding="utf-8")
	with pytest.raises(ConfigurationError):
		pipeline_settings.load_settings(str(settings_path))


#============================================
def test_get_setting_int_invalid_value_raises() -> None:
	"""
	Invalid integer setting should raise RuntimeError.
	"""
	settings = {"llm": {"word_ceiling": "abc"}}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_setting_int(settings, ["llm", "word_ceiling"], 600)


#============================================
def test_get_setting_bool_parses_strings() -> None:
	settings = {"flags": {"on": "yes", "off": "0"}}
	assert pipeline_settings.get_setting_bool(settings, ["flags", "on"], False) is True
	assert pipeline_settings.get_setting_bool(settings, ["flags", "off"], True) is False
	assert pipeline_settings.get_setting_bool(settings, ["flags", "missing"], True) is True


#============================================
def test_get_enabled_llm_transport_single_enabled() -> None:
	"""
	Exactly one enabled provider should be selected.
	"""
	settings = {
		"llm": {
			"providers": {
				"openai": {"enabled": False},
				"ollama": {"enabled": True},
			}
		}
	}
	assert pipeline_settings.get_enabled_llm_transport(settings) == "ollama"


#============================================
def test_get_enabled_llm_transport_multiple_enabled_raises() -> None:
	"""
	More than one enabled provider should raise RuntimeError.
	"""
	settings = {
		"llm": {
			"providers": {
				"openai": {"enabled": True},
				"ollama": {"enabled": True},
			}
		}
	}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_enabled_llm_transport(settings)


#============================================
def test_get_enabled_llm_transport_defaults_to_openai() -> None:
	assert pipeline_settings.get_enabled_llm_transport({}) == "openai"


#============================================
def test_get_llm_provider_model_requires_model_for_ollama() -> None:
	"""
	Only the hosted backend has a built-in default model.
	"""
	assert pipeline_settings.get_llm_provider_model({}, "openai") == "gpt-4o-mini"
	with pytest.raises(ConfigurationError):
		pipeline_settings.get_llm_provider_model({}, "ollama")


#============================================
def test_parse_repositories_rejects_incomplete_entry() -> None:
	with pytest.raises(ConfigurationError):
		pipeline_settings.parse_repositories({"repositories": [{"owner": "octo"}]})


#============================================
def test_build_digest_config_environment_wins() -> None:
	"""
	Environment credentials override settings file values.
	"""
	settings = {
		"github": {"token": "file-token"},
		"notion": {"parent_id": "file-parent", "parent_type": "page"},
		"site": {"url": "https://file.example.com/"},
	}
	environ = {
		"GITHUB_TOKEN": "env-token",
		"NOTION_API_KEY": "secret_notion",
		"NOTION_PARENT_TYPE": "database",
		"CRON_SECRET": "s3cret",
	}
	config = pipeline_settings.build_digest_config(settings, environ)
	assert config.github_token == "env-token"
	assert config.notion_api_key == "secret_notion"
	assert config.notion_parent_id == "file-parent"
	assert config.notion_parent_is_database is True
	assert config.site_url == "https://file.example.com"
	assert config.cron_secret == "s3cret"
	assert config.llm_transport == "openai"
	assert config.word_ceiling == 600


#============================================
def test_build_digest_config_vercel_host_sets_site_url() -> None:
	config = pipeline_settings.build_digest_config({}, {"VERCEL_URL": "digest-abc.vercel.app"})
	assert config.site_url == "https://digest-abc.vercel.app"


#============================================
def test_build_digest_config_rejects_bad_parent_type() -> None:
	with pytest.raises(ConfigurationError):
		pipeline_settings.build_digest_config({}, {"NOTION_PARENT_TYPE": "workspace"})


#============================================
def test_require_names_missing_fields() -> None:
	"""
	require() lists every empty field in one error.
	"""
	config = pipeline_settings.DigestConfig(github_token="x")
	config.require("github_token")
	with pytest.raises(ConfigurationError) as excinfo:
		config.require("github_token", "notion_api_key", "notion_parent_id")
	assert "notion_api_key, notion_parent_id" in str(excinfo.value)


#============================================
def test_numeric_settings_reject_collections() -> None:
	"""
	List or mapping values for numeric settings are configuration errors.
	"""
	settings = {"llm": {"temperature": [0.7], "word_ceiling": {"max": 600}}}
	with pytest.raises(ConfigurationError):
		pipeline_settings.get_setting_float(settings, ["llm", "temperature"], 0.7)
	with pytest.raises(ConfigurationError):
		pipeline_settings.get_setting_int(settings, ["llm", "word_ceiling"], 600)
	with pytest.raises(ConfigurationError):
		pipeline_settings.build_digest_config(settings, {})
