from dataclasses import dataclass

import requests

from devlib import html_renderer
from devlib import markdown_blocks
from devlib.errors import UpstreamAPIError


NOTION_API = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
NOTION_PAGE_URL = "https://www.notion.so"
MAX_BLOCKS_PER_REQUEST = 100


#============================================
@dataclass(frozen=True)
class StoredPage:
	id: str
	url: str
	properties: dict
	children: tuple
	parent: dict


#============================================
@dataclass(frozen=True)
class PageSummary:
	id: str
	title: str
	url: str
	created_time: str

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"title": self.title,
			"url": self.url,
			"created_time": self.created_time,
		}


#============================================
class NotionClient:
	"""
	Minimal Notion REST client covering the page and block calls used here.
	"""

	def __init__(self, api_key: str, session=None, base_url: str = NOTION_API, timeout: int = 30):
		self.base_url = base_url.rstrip("/")
		self.timeout = timeout
		self.session = session or requests.Session()
		self.session.headers.update(
			{
				"Authorization": f"Bearer {api_key}",
				"Notion-Version": NOTION_VERSION,
				"Content-Type": "application/json",
			}
		)

	#============================================
	def _request(self, method: str, path: str, params: dict | None = None, payload: dict | None = None) -> dict:
		"""
		Send one request and return parsed JSON, raising on non-2xx.
		"""
		url = f"{self.base_url}{path}"
		try:
			response = self.session.request(method, url, params=params, json=payload, timeout=self.timeout)
		except requests.RequestException as error:
			raise UpstreamAPIError("Notion", None, f"{method} {path} failed: {error}") from error
		if not response.ok:
			raise UpstreamAPIError("Notion", response.status_code, response.text)
		return response.json()

	#============================================
	def retrieve_page(self, page_id: str) -> dict:
		return self._request("GET", f"/pages/{page_id}")

	#============================================
	def list_block_children(self, block_id: str, start_cursor: str | None = None, page_size: int = 100) -> dict:
		params = {"page_size": page_size}
		if start_cursor:
			params["start_cursor"] = start_cursor
		return self._request("GET", f"/blocks/{block_id}/children", params=params)

	#============================================
	def create_page(self, parent: dict, properties: dict, children: list) -> dict:
		if len(children) > MAX_BLOCKS_PER_REQUEST:
			raise ValueError(f"create_page accepts at most {MAX_BLOCKS_PER_REQUEST} blocks")
		payload = {"parent": parent, "properties": properties, "children": children}
		return self._request("POST", "/pages", payload=payload)

	#============================================
	def append_block_children(self, block_id: str, children: list) -> dict:
		if len(children) > MAX_BLOCKS_PER_REQUEST:
			raise ValueError(f"append_block_children accepts at most {MAX_BLOCKS_PER_REQUEST} blocks")
		return self._request("PATCH", f"/blocks/{block_id}/children", payload={"children": children})


#============================================
def page_url(page_id: str) -> str:
	"""
	Map a raw page id to its canonical Notion URL.
	"""
	return f"{NOTION_PAGE_URL}/{page_id.replace('-', '')}"


#============================================
def chunk_blocks(blocks: list, size: int = MAX_BLOCKS_PER_REQUEST) -> list[list]:
	return [blocks[offset:offset + size] for offset in range(0, len(blocks), size)]


#============================================
def build_parent(parent_id: str, parent_is_database: bool) -> dict:
	if parent_is_database:
		return {"database_id": parent_id}
	return {"page_id": parent_id}


#============================================
def build_title_properties(title: str) -> dict:
	return {"title": {"title": [{"type": "text", "text": {"content": title}}]}}


#============================================
def create_page(
	store,
	parent_id: str,
	title: str,
	markdown_body: str,
	parent_is_database: bool = False,
	logger=None,
) -> StoredPage:
	"""
	Create a page from Markdown, appending blocks past the first 100 in order.

	An append failure leaves the page created with only part of its content.
	"""
	children = markdown_blocks.markdown_to_payloads(markdown_body)
	parent = build_parent(parent_id, parent_is_database)
	properties = build_title_properties(title)
	chunks = chunk_blocks(children)
	first_chunk = chunks[0] if chunks else []
	if logger:
		logger(f"Creating page '{title}' with {len(children)} block(s) in {max(1, len(chunks))} request(s).")
	page = store.create_page(parent, properties, first_chunk)
	page_id = page["id"]
	for index, chunk in enumerate(chunks[1:], start=2):
		if logger:
			logger(f"Appending block chunk {index}/{len(chunks)} ({len(chunk)} block(s)).")
		store.append_block_children(page_id, chunk)
	return StoredPage(
		id=page_id,
		url=page.get("url") or page_url(page_id),
		properties=page.get("properties") or properties,
		children=tuple(children),
		parent=page.get("parent") or parent,
	)


#============================================
def child_page_title(block: dict) -> str:
	"""
	Read the title of a child_page block.
	"""
	child = block.get("child_page") or {}
	title = child.get("title")
	if isinstance(title, str) and title:
		return title
	runs = child.get("rich_text") or []
	text = "".join(str(item.get("plain_text", "")) for item in runs if isinstance(item, dict))
	return text or "Untitled"


#============================================
def list_child_pages(store, parent_id: str) -> list[PageSummary]:
	"""
	List child pages of parent_id, newest first.
	"""
	pages = []
	for block in html_renderer.iter_child_blocks(store, parent_id):
		if block.get("type") != "child_page":
			continue
		block_id = str(block.get("id") or "")
		pages.append(
			PageSummary(
				id=block_id,
				title=child_page_title(block),
				url=page_url(block_id) if block_id else "",
				created_time=str(block.get("created_time") or ""),
			)
		)
	pages.sort(key=lambda item: item.created_time, reverse=True)
	return pages
