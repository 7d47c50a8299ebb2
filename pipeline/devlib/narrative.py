from devlib import activity
from devlib import prompt_loader
from devlib.errors import EmptyGenerationError


SAMPLE_COMMIT_LIMIT = 5
SYSTEM_PROMPT_NAME = "system_persona.md"
USER_PROMPT_NAME = "weekly_digest.md"


#============================================
def render_quiet_week(week_label: str, template_name: str = "quiet_week.md") -> str:
	"""
	Render the fixed no-activity post; no backend call.
	"""
	template = prompt_loader.load_prompt(template_name)
	return prompt_loader.render_prompt(template, {"week_label": week_label}).strip()


#============================================
def build_repo_context(records) -> str:
	"""
	Describe each active repo with commit count and sample messages.
	"""
	sections = []
	for record in records:
		repo = record.repo
		description = f" ({repo.description})" if repo.description else ""
		samples = [
			activity.commit_message(commit)
			for commit in record.commits[:SAMPLE_COMMIT_LIMIT]
		]
		sample_text = "\n  - ".join(samples)
		sections.append(
			f"- **{repo.full_name}**{description}\n"
			+ f"  Commits: {len(record.commits)}\n"
			+ f"  Sample messages:\n  - {sample_text}"
		)
	return "\n\n".join(sections)


#============================================
def build_user_prompt(records, week_label: str, word_ceiling: int) -> str:
	template = prompt_loader.load_prompt(USER_PROMPT_NAME)
	values = {
		"week_label": week_label,
		"repo_context": build_repo_context(records),
		"word_ceiling": str(word_ceiling),
	}
	return prompt_loader.render_prompt(template, values).strip()


#============================================
def synthesize(records, week_label: str, backend, config, logger=None) -> str:
	"""
	Produce the weekly digest Markdown from collected activity.

	Args:
		records: ActivityRecord list from the collector.
		week_label: human-readable week range, e.g. 'Feb 14, 2025 – Feb 21, 2025'.
		backend: chat transport exposing generate_chat().
		config: DigestConfig supplying temperature, word ceiling and quiet-week template.
		logger: optional callable for progress lines.

	Returns:
		Markdown text. Backend errors propagate unchanged; there is no retry.
	"""
	active = activity.active_records(records)
	if not active:
		if logger:
			logger("No repository activity; using quiet-week template.")
		return render_quiet_week(week_label, config.quiet_week_template)
	system_message = prompt_loader.load_prompt(SYSTEM_PROMPT_NAME).strip()
	user_message = build_user_prompt(active, week_label, config.word_ceiling)
	if logger:
		logger(f"Requesting digest for {len(active)} active repo(s).")
	content = backend.generate_chat(
		system_message,
		user_message,
		temperature=config.llm_temperature,
	)
	content = (content or "").strip()
	if not content:
		raise EmptyGenerationError("LLM backend returned empty content")
	return content
