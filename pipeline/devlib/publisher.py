import asyncio
import re
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta

from devlib import activity
from devlib import narrative
from devlib import notion_store
from devlib import pipeline_text_utils


H1_RE = re.compile(r"^#[ \t]+(\S.*)$", re.MULTILINE)
H2_RE = re.compile(r"^##[ \t]+(\S.*)$", re.MULTILINE)
WINDOW_DAYS = 7
PREVIEW_CHARS = 800
FRIDAY = 4


#============================================
@dataclass(frozen=True)
class TitleExtraction:
	"""
	Outcome of reading a title from Markdown; title is None when reason says why.
	"""

	title: str | None
	reason: str


#============================================
@dataclass(frozen=True)
class PublishResult:
	title: str
	week_label: str
	active_repos: int
	total_repos: int
	url: str = ""
	page_id: str = ""
	dry_run: bool = False
	preview: str = ""

	def to_dict(self) -> dict:
		return {
			"ok": True,
			"title": self.title,
			"weekLabel": self.week_label,
			"url": self.url or self.page_id,
			"activeRepos": self.active_repos,
			"totalRepos": self.total_repos,
			"dryRun": self.dry_run,
		}


#============================================
def format_day(value: datetime) -> str:
	return f"{value:%b} {value.day}, {value.year}"


#============================================
def compute_week_label(now: datetime) -> str:
	"""
	Label the Friday-to-Friday week ending on the most recent Friday.
	"""
	days_since_friday = (now.weekday() - FRIDAY) % 7
	last_friday = now - timedelta(days=days_since_friday)
	previous_friday = last_friday - timedelta(days=7)
	return f"{format_day(previous_friday)} – {format_day(last_friday)}"


#============================================
def compute_since(now: datetime) -> datetime:
	return now - timedelta(days=WINDOW_DAYS)


#============================================
def extract_title(markdown: str) -> TitleExtraction:
	"""
	Find the first H1, else the first H2.
	"""
	for pattern, source in ((H1_RE, "h1"), (H2_RE, "h2")):
		match = pattern.search(markdown or "")
		if match:
			return TitleExtraction(match.group(1).strip(), source)
	return TitleExtraction(None, "no level-1 or level-2 heading")


#============================================
def fallback_title(week_label: str) -> str:
	return f"Weekly Dev Digest – {week_label}"


#============================================
def resolve_title(markdown: str, week_label: str) -> str:
	extraction = extract_title(markdown)
	if extraction.title:
		return extraction.title
	return fallback_title(week_label)


#============================================
def build_preview(markdown: str) -> str:
	return pipeline_text_utils.trim_to_char_limit(markdown, PREVIEW_CHARS)


#============================================
async def publish_weekly_digest(
	config,
	github,
	backend,
	store=None,
	dry_run: bool = False,
	now: datetime | None = None,
	logger=None,
) -> PublishResult:
	"""
	Collect activity, write the digest, and publish it to Notion.

	Dry-run stops after synthesis and returns a preview instead of a page.
	"""
	if now is None:
		now = datetime.now().astimezone()
	week_label = compute_week_label(now)
	since = compute_since(now)
	repos = list(config.repositories)
	if logger:
		logger(f"Week: {week_label}")
		logger(f"Tracking {len(repos)} repo(s) since {since.date().isoformat()}")

	records = await activity.fetch_activity(repos, github, since)
	active_count = len(activity.active_records(records))
	if logger:
		logger(f"Repos with activity: {active_count}/{len(repos)}")

	markdown = await asyncio.to_thread(
		narrative.synthesize,
		records,
		week_label,
		backend,
		config,
		logger,
	)
	title = resolve_title(markdown, week_label)
	if logger:
		word_count = pipeline_text_utils.count_words(markdown)
		logger(f"Generated: '{title}' ({word_count} words)")

	if dry_run:
		return PublishResult(
			title=title,
			week_label=week_label,
			active_repos=active_count,
			total_repos=len(repos),
			dry_run=True,
			preview=build_preview(markdown),
		)

	page = await asyncio.to_thread(
		notion_store.create_page,
		store,
		config.notion_parent_id,
		title,
		markdown,
		config.notion_parent_is_database,
		logger,
	)
	return PublishResult(
		title=title,
		week_label=week_label,
		active_repos=active_count,
		total_repos=len(repos),
		url=page.url,
		page_id=page.id,
	)
