import asyncio
from dataclasses import dataclass
from datetime import datetime


#============================================
@dataclass(frozen=True)
class RepoRef:
	"""
	One tracked repository, identified by owner and name.
	"""

	owner: str
	repo: str
	description: str | None = None

	@property
	def full_name(self) -> str:
		return f"{self.owner}/{self.repo}"


#============================================
@dataclass(frozen=True)
class ActivityRecord:
	"""
	Commits collected for one repository during one run.
	"""

	repo: RepoRef
	commits: tuple
	has_activity: bool


#============================================
def commit_message(commit: dict) -> str:
	"""
	Read the commit message from a REST-shaped commit payload.
	"""
	payload = commit.get("commit") if isinstance(commit, dict) else None
	if not isinstance(payload, dict):
		return "n/a"
	message = payload.get("message")
	if not message:
		return "n/a"
	return str(message)


#============================================
async def fetch_repo_activity(repo: RepoRef, client, since: datetime) -> ActivityRecord:
	"""
	Fetch commits for one repository since the cutoff.
	"""
	commits = await asyncio.to_thread(client.list_commits_since, repo.owner, repo.repo, since)
	commits = tuple(commits or ())
	return ActivityRecord(repo=repo, commits=commits, has_activity=len(commits) > 0)


#============================================
async def fetch_activity(repos, client, since: datetime) -> list[ActivityRecord]:
	"""
	Fetch activity for every repository concurrently, keeping input order.

	Any failing repository fails the whole collection.
	"""
	tasks = [fetch_repo_activity(repo, client, since) for repo in repos]
	records = await asyncio.gather(*tasks)
	return list(records)


#============================================
def active_records(records) -> list[ActivityRecord]:
	"""
	Keep only the records that saw at least one commit.
	"""
	return [record for record in records if record.has_activity]
