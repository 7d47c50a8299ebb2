import os
import sys

import pytest


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from devlib import activity
from devlib import narrative
from devlib.errors import EmptyGenerationError
from devlib.pipeline_settings import DigestConfig


WEEK = "Feb 14, 2025 – Feb 21, 2025"


#============================================
class FakeBackend:
	"""
	Chat transport stub returning a fixed reply and recording the request.
	"""

	def __init__(self, reply: str = "# Shipping Season\n\nBody"):
		self.reply = reply
		self.calls = []

	def generate_chat(self, system_message, user_message, *, temperature):
		self.calls.append((system_message, user_message, temperature))
		return self.reply


#============================================
def make_record(repo: str, messages: list[str], description: str | None = None) -> activity.ActivityRecord:
	commits = tuple({"commit": {"message": message}} for message in messages)
	return activity.ActivityRecord(
		repo=activity.RepoRef("octo", repo, description),
		commits=commits,
		has_activity=bool(commits),
	)


#============================================
def test_quiet_week_is_deterministic_and_skips_backend() -> None:
	"""
	All-inactive input renders the template twice identically with no backend call.
	"""
	backend = FakeBackend()
	records = [make_record("alpha", []), make_record("beta", [])]
	first = narrative.synthesize(records, WEEK, backend, DigestConfig())
	second = narrative.synthesize(records, WEEK, backend, DigestConfig())
	assert first == second
	assert first.startswith(f"## A Quiet Week ({WEEK})")
	assert "{{" not in first
	assert backend.calls == []


#============================================
def test_quiet_week_template_is_configurable(tmp_path) -> None:
	"""
	A custom template path replaces the default prose.
	"""
	template = tmp_path / "quiet.md"
	template.write_text("# Stille Woche {{week_label}}\n", encoding="utf-8")
	config = DigestConfig(quiet_week_template=str(template))
	text = narrative.synthesize([], WEEK, FakeBackend(), config)
	assert text == f"# Stille Woche {WEEK}"


#============================================
def test_prompt_lists_active_repos_with_five_samples() -> None:
	"""
	Only active repos appear, with description, count and at most 5 messages.
	"""
	backend = FakeBackend()
	records = [
		make_record("alpha", [f"msg {index}" for index in range(7)], "Fast parser"),
		make_record("beta", []),
	]
	config = DigestConfig(llm_temperature=0.3, word_ceiling=450)
	markdown = narrative.synthesize(records, WEEK, backend, config)
	assert markdown == "# Shipping Season\n\nBody"
	system_message, user_message, temperature = backend.calls[0]
	assert "weekly development digests" in system_message
	assert temperature == 0.3
	assert f"week of **{WEEK}**" in user_message
	assert "- **octo/alpha** (Fast parser)" in user_message
	assert "Commits: 7" in user_message
	assert "msg 4" in user_message
	assert "msg 5" not in user_message
	assert "octo/beta" not in user_message
	assert "~450 words" in user_message


#============================================
def test_missing_commit_message_reads_na() -> None:
	records = [
		activity.ActivityRecord(
			repo=activity.RepoRef("octo", "alpha"),
			commits=({"sha": "1"},),
			has_activity=True,
		)
	]
	context = narrative.build_repo_context(records)
	assert "  - n/a" in context


#============================================
def test_empty_generation_raises() -> None:
	"""
	Whitespace-only completions are a hard error.
	"""
	with pytest.raises(EmptyGenerationError):
		narrative.synthesize([make_record("alpha", ["m"])], WEEK, FakeBackend("   \n"), DigestConfig())


#============================================
def test_backend_errors_propagate_unchanged() -> None:
	"""
	Backend failures are not wrapped or retried.
	"""
	class BrokenBackend:
		calls = 0

		def generate_chat(self, system_message, user_message, *, temperature):
			BrokenBackend.calls += 1
			raise ConnectionError("backend unreachable")

	with pytest.raises(ConnectionError):
		narrative.synthesize([make_record("alpha", ["m"])], WEEK, BrokenBackend(), DigestConfig())
	assert BrokenBackend.calls == 1
