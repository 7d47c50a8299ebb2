"""
Read API and scheduled-trigger endpoint for published digests.

- GET /api/blogs - list published posts, newest first
- GET /api/post?id=... - one post rendered to HTML
- GET /api/feed - RSS 2.0 feed of the newest posts
- GET|POST /api/generate-blog - run the weekly pipeline (cron target)
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime

import rich.console
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from devlib import feed
from devlib import html_renderer
from devlib import notion_store
from devlib import publisher
from devlib.errors import ConfigurationError
from devlib.github_client import GitHubClient
from devlib.llm_transports import create_llm_transport

FEED_CACHE_CONTROL = "s-maxage=300, stale-while-revalidate"
BEARER_RE = re.compile(r"^Bearer\s+", re.IGNORECASE)
RICH_CONSOLE = rich.console.Console(stderr=True)


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped API log line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	style = "bold red" if "error" in message.lower() else "cyan"
	RICH_CONSOLE.print(f"[digest_api {now_text}] {message}", style=style, markup=False)


#============================================
def provided_secret(request: Request) -> str:
	"""
	Read the cron secret from the Authorization header or ?secret=.
	"""
	auth = request.headers.get("authorization", "")
	token = BEARER_RE.sub("", auth).strip()
	if token:
		return token
	return request.query_params.get("secret", "")


#============================================
def create_app(config, store=None, github_factory=None, backend_factory=None) -> FastAPI:
	"""
	Build the API around one DigestConfig and its collaborators.
	"""
	app = FastAPI(title="Dev Log Digest API")

	def get_store():
		if store is not None:
			return store
		config.require("notion_api_key", "notion_parent_id")
		return notion_store.NotionClient(config.notion_api_key)

	def get_github():
		if github_factory is not None:
			return github_factory()
		config.require("github_token")
		return GitHubClient(config.github_token, log_fn=log_step)

	def get_backend():
		if backend_factory is not None:
			return backend_factory()
		return create_llm_transport(config)

	@app.exception_handler(RuntimeError)
	@app.exception_handler(Exception)
	async def error_handler(request: Request, exc: Exception) -> JSONResponse:
		log_step(f"{request.url.path} error: {exc}")
		return JSONResponse(status_code=500, content={"error": str(exc) or "Request failed"})

	@app.get("/api/blogs")
	async def list_blogs() -> JSONResponse:
		active_store = get_store()
		config.require("notion_parent_id")
		pages = await asyncio.to_thread(notion_store.list_child_pages, active_store, config.notion_parent_id)
		return JSONResponse(
			content=[page.to_dict() for page in pages],
			headers={"Access-Control-Allow-Origin": "*"},
		)

	@app.get("/api/post")
	async def get_post(id: str = "") -> JSONResponse:
		if not id:
			return JSONResponse(status_code=400, content={"error": "Missing id parameter"})
		active_store = get_store()
		rendered = await asyncio.to_thread(html_renderer.render_page, active_store, id)
		return JSONResponse(
			content={
				"title": rendered.title,
				"html": rendered.html,
				"created_time": rendered.created_time,
			},
			headers={"Access-Control-Allow-Origin": "*"},
		)

	@app.get("/api/feed")
	async def get_feed() -> Response:
		try:
			active_store = get_store()
			rss = await feed.build_feed(
				active_store,
				config.notion_parent_id,
				config.site_url,
				config.feed_title,
				config.feed_description,
			)
		except Exception as error:
			log_step(f"Feed error: {error}")
			return Response(content="Feed generation failed", status_code=500, media_type="text/plain")
		return Response(
			content=rss,
			media_type="application/rss+xml; charset=utf-8",
			headers={"Cache-Control": FEED_CACHE_CONTROL},
		)

	@app.api_route("/api/generate-blog", methods=["GET", "POST"])
	async def generate_blog(request: Request) -> JSONResponse:
		if config.cron_secret and provided_secret(request) != config.cron_secret:
			return JSONResponse(status_code=401, content={"error": "Unauthorized"})
		if not config.repositories:
			raise ConfigurationError("settings.yaml has no repositories")
		config.require("notion_parent_id")
		result = await publisher.publish_weekly_digest(
			config,
			get_github(),
			get_backend(),
			store=get_store(),
			logger=log_step,
		)
		return JSONResponse(content=result.to_dict())

	return app
