from datetime import datetime
from datetime import timezone

import requests
from github import Auth
from github import Github
from github.GithubException import GithubException

from devlib.errors import UpstreamAPIError


COMMITS_PAGE_CAP = 100


#============================================
class GitHubClient:
	"""
	Thin PyGithub wrapper for the weekly activity collector.
	"""

	def __init__(self, token: str, log_fn=None):
		self.log_fn = log_fn
		self.client = self._build_github_client(token)

	#============================================
	def _build_github_client(self, token: str):
		"""
		Create Github client with retry disabled and a 100-item page size.
		"""
		if token:
			return Github(auth=Auth.Token(token), per_page=COMMITS_PAGE_CAP, retry=None)
		return Github(per_page=COMMITS_PAGE_CAP, retry=None)

	#============================================
	def log(self, message: str) -> None:
		"""
		Emit one log line when logger is configured.
		"""
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def normalize_datetime(self, value: datetime) -> datetime:
		"""
		Normalize datetime to timezone-aware UTC.
		"""
		if value.tzinfo is None:
			return value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc)

	#============================================
	def raise_from_github_error(self, error: GithubException, context: str) -> None:
		"""
		Re-raise a PyGithub error as UpstreamAPIError with status and body.
		"""
		status = getattr(error, "status", None)
		body = getattr(error, "data", None)
		if body is None or body == "":
			body = str(error)
		self.log(f"GitHub request failed ({context}): status={status}")
		raise UpstreamAPIError("GitHub", status, str(body)) from error

	#============================================
	def list_commits_since(self, owner: str, repo: str, since: datetime) -> list[dict]:
		"""
		List up to one capped page of commits made after since.
		"""
		full_name = f"{owner}/{repo}"
		context = f"GET /repos/{full_name}/commits"
		since_utc = self.normalize_datetime(since)
		try:
			repo_obj = self.client.get_repo(full_name, lazy=True)
			first_page = repo_obj.get_commits(since=since_utc).get_page(0)
			commits = [commit_to_dict(commit_obj) for commit_obj in first_page[:COMMITS_PAGE_CAP]]
		except GithubException as error:
			self.raise_from_github_error(error, context)
		except requests.RequestException as error:
			self.log(f"GitHub request failed ({context}): {error}")
			raise UpstreamAPIError("GitHub", None, str(error)) from error
		self.log(f"{full_name}: {len(commits)} commit(s) since {since_utc.isoformat()}")
		return commits


#============================================
def to_utc_iso(value) -> str:
	"""
	Convert datetime-like values to ISO-8601 UTC strings.
	"""
	if value is None:
		return ""
	if isinstance(value, str):
		return value
	if isinstance(value, datetime):
		if value.tzinfo is None:
			value = value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc).isoformat()
	return str(value)


#============================================
def commit_to_dict(commit_obj) -> dict:
	"""
	Normalize a PyGithub commit object to REST-like dict shape.
	"""
	if isinstance(commit_obj, dict):
		return dict(commit_obj)
	# listed commits are lazy; raw_data would trigger one extra GET per commit
	git_commit = getattr(commit_obj, "commit", None)
	author = getattr(git_commit, "author", None)
	return {
		"sha": getattr(commit_obj, "sha", ""),
		"html_url": getattr(commit_obj, "html_url", ""),
		"commit": {
			"message": getattr(git_commit, "message", "") or "",
			"author": {
				"name": getattr(author, "name", "") or "",
				"date": to_utc_iso(getattr(author, "date", None)),
			},
		},
	}
